"""
Immutable Update Benchmark: strata Model vs Pydantic V2 model_copy

Measures the per-operation cost of the things a client does with a fetched
item: building it from raw data, changing one field, merging a payload, and
building the Query that asks for it.

Pydantic is the reference point for "copy with changes" on a frozen model;
it has no query descriptors, so that test runs on strata alone.
"""

import time
import sys

# ============================================================================
# Setup: Import all libraries
# ============================================================================

try:
    from strata import Model, UNDEFINED
    HAS_STRATA = True
except Exception as e:
    print(f"strata not available: {e}")
    HAS_STRATA = False

try:
    from pydantic import BaseModel as PydanticBaseModel, ConfigDict
    import pydantic
    HAS_PYDANTIC = True
except Exception:
    HAS_PYDANTIC = False
    print("pydantic not installed")


# ============================================================================
# Schema Definitions - same fields and defaults in both libraries
# ============================================================================

if HAS_STRATA:
    class StrataUser(Model):
        model_name = 'bench.user'
        fields = {'id': UNDEFINED, 'name': '', 'email': ''}

    class StrataPost(Model):
        model_name = 'bench.post'
        fields = {'id': None, 'title': '', 'body': '', 'tags': (), 'author': StrataUser}

if HAS_PYDANTIC:
    class PydanticUser(PydanticBaseModel):
        model_config = ConfigDict(frozen=True)
        id: object = None
        name: str = ''
        email: str = ''

    class PydanticPost(PydanticBaseModel):
        model_config = ConfigDict(frozen=True)
        id: object = None
        title: str = ''
        body: str = ''
        tags: tuple = ()
        author: PydanticUser = PydanticUser()


POST = {
    'id': 1,
    'title': 'Hello',
    'body': 'First post',
    'tags': ('intro',),
    'author': {'id': 7, 'name': 'Joe', 'email': 'joe@example.com'},
}
PATCH = {'title': 'Hello again', 'body': 'Edited'}


# ============================================================================
# Benchmark Functions
# ============================================================================

def bench_single_op(name: str, fn, iterations: int = 100_000, warmup: int = 1000) -> tuple:
    """
    Benchmark one operation.
    Returns (total_time, per_op_ns, throughput)
    """
    for _ in range(warmup):
        fn()

    start = time.perf_counter()
    for _ in range(iterations):
        fn()
    elapsed = time.perf_counter() - start

    per_op_ns = (elapsed / iterations) * 1_000_000_000
    throughput = iterations / elapsed

    return elapsed, per_op_ns, throughput


def format_result(per_op_ns: float, throughput: float) -> str:
    if throughput >= 1_000_000:
        return f"{per_op_ns:>8.0f} ns  ({throughput/1_000_000:.2f}M/sec)"
    elif throughput >= 1_000:
        return f"{per_op_ns:>8.0f} ns  ({throughput/1_000:.0f}K/sec)"
    else:
        return f"{per_op_ns:>8.0f} ns  ({throughput:.0f}/sec)"


def report(results: dict, test_key: str, lib: str, fn, label: str) -> None:
    _, ns, tp = bench_single_op(lib, fn, ITERATIONS)
    results.setdefault(test_key, {})[lib] = (ns, tp)
    print(f"  {label:<20} {format_result(ns, tp)}")


# ============================================================================
# Run Benchmarks
# ============================================================================

ITERATIONS = 100_000
results = {}

print("=" * 80)
print("  IMMUTABLE UPDATE BENCHMARK")
print("=" * 80)
print(f"  Iterations per test: {ITERATIONS:,}")
print(f"  Python: {sys.version.split()[0]}")
if HAS_PYDANTIC: print(f"  pydantic: {pydantic.__version__}")
print("=" * 80)
print()

print("─" * 80)
print("TEST 1: Construction from raw data (nested author)")
print("─" * 80)
if HAS_STRATA:
    report(results, "create", "strata", lambda: StrataPost(POST), "strata:")
if HAS_PYDANTIC:
    report(results, "create", "pydantic", lambda: PydanticPost(**POST), "Pydantic V2:")
print()

print("─" * 80)
print("TEST 2: Change one field")
print("─" * 80)
if HAS_STRATA:
    strata_post = StrataPost(POST)
    report(results, "set", "strata", lambda: strata_post.set('title', 'x'), "strata set():")
if HAS_PYDANTIC:
    pydantic_post = PydanticPost(**POST)
    report(results, "set", "pydantic", lambda: pydantic_post.model_copy(update={'title': 'x'}),
           "Pydantic model_copy:")
print()

print("─" * 80)
print("TEST 3: Merge a partial payload")
print("─" * 80)
if HAS_STRATA:
    report(results, "merge", "strata", lambda: strata_post.merge(PATCH), "strata merge():")
if HAS_PYDANTIC:
    report(results, "merge", "pydantic", lambda: pydantic_post.model_copy(update=PATCH),
           "Pydantic model_copy:")
print()

print("─" * 80)
print("TEST 4: Build and hash a Query")
print("─" * 80)
if HAS_STRATA:
    report(results, "query", "strata",
           lambda: hash(StrataPost.get_list(['title', 'author'], {'author_id': 7})),
           "strata get_list():")
print()

# ============================================================================
# SUMMARY
# ============================================================================
print("=" * 80)
print("  SUMMARY: Per-Operation Latency (lower is better)")
print("=" * 80)
print(f"  {'Test':<20} {'strata':>10} {'pydantic':>10}")
print(f"  {'─'*20} {'─'*10} {'─'*10}")

test_names = {
    "create": "Construction",
    "set": "Set one field",
    "merge": "Merge payload",
    "query": "Query build+hash",
}

for test_key, test_name in test_names.items():
    if test_key not in results:
        continue
    row = results[test_key]
    cells = [f"{row[lib][0]:.0f}ns" if lib in row else "—" for lib in ("strata", "pydantic")]
    print(f"  {test_name:<20} {cells[0]:>10} {cells[1]:>10}")

print()
print("=" * 80)
print("  NOTES")
print("=" * 80)
print("  - strata validates field names on set()/merge(); model_copy does not")
print("  - Both libraries share unchanged values between old and new instances")
print("=" * 80)
