"""
Benchmark: structdiff whole-document vs chunked diffs.

Measures:
    1. A realistic config diff (what the tree and summary look like)
    2. Whole-document diff vs one step() per top-level key
    3. Sequence alignment cost, edit script vs positional fallback
    4. Very deep documents against the depth cap

The point of §2 is the LONGEST SINGLE CALL: a host that steps key by
key never blocks for longer than its largest subtree takes to diff.
"""

import os
import random
import sys
import time

import yaml

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from structdiff.config import DiffConfig
from structdiff.core import DiffType, diff_values, iter_nodes, summarize
from structdiff.formats import from_python
from structdiff.session import DiffSession


# ═══════════════════════════════════════════════════════════════════
#  TEST DATA
# ═══════════════════════════════════════════════════════════════════

CONFIG_A = """\
server:
  host: 0.0.0.0
  port: 443
  tls: true
  workers: 4
database:
  host: db.internal
  port: 5432
  name: production
  pool_size: 10
logging:
  level: WARN
  format: json
  outputs: [stdout, file]
cache:
  backend: redis
  ttl: 300
"""

CONFIG_B = """\
server:
  host: 0.0.0.0
  port: 8080
  tls: false
  workers: 4
database:
  host: db.staging
  port: 5432
  name: staging
  pool_size: 10
logging:
  level: DEBUG
  format: json
  outputs: [stdout]
monitoring:
  enabled: true
  endpoint: /health
"""


def _services(n, seed):
    """A deployment manifest with `n` services, perturbed by `seed`."""
    rng = random.Random(seed)
    doc = {}
    for i in range(n):
        doc[f"service_{i:04d}"] = {
            "image": f"registry.local/svc-{i}:{rng.choice(['1.0', '1.1', '2.0'])}",
            "replicas": rng.randint(1, 5),
            "env": [{"name": f"VAR_{j}", "value": str(rng.randint(0, 3))} for j in range(8)],
            "ports": sorted(rng.sample(range(8000, 8100), 3)),
        }
    return yaml.safe_dump(doc, sort_keys=False)


def _timed(fn, *args):
    t0 = time.perf_counter()
    result = fn(*args)
    return result, time.perf_counter() - t0


# ═══════════════════════════════════════════════════════════════════
#  BENCHMARKS
# ═══════════════════════════════════════════════════════════════════

def benchmark_config_diff():
    """Diff a small config and print the changed leaves."""
    print("=" * 70)
    print("  §1  CONFIG DIFF (realistic use case)")
    print("=" * 70)
    print()

    session = DiffSession()
    keys = session.init(CONFIG_A, CONFIG_B)
    nodes, dt = _timed(session.whole_document)
    session.cleanup()

    print(f"  Top-level keys:  {', '.join(keys)}")
    for node in iter_nodes(nodes):
        if node.children or node.diff_type == DiffType.UNCHANGED:
            continue
        before = node.left_value.to_python() if node.left_value is not None else "—"
        after = node.right_value.to_python() if node.right_value is not None else "—"
        print(f"    {node.diff_type.name:<9} {str(node.key or '[]'):<10} {before} → {after}")
    print(f"  Summary:         {summarize(nodes)}")
    print(f"  Time:            {dt*1000:.2f}ms")
    print()


def benchmark_chunked_vs_whole():
    """Whole-document diff vs one step() per top-level key."""
    print("=" * 70)
    print("  §2  CHUNKED vs WHOLE DOCUMENT")
    print("=" * 70)
    print()

    for n in [100, 500, 2000]:
        left, right = _services(n, 1), _services(n, 2)

        session = DiffSession()
        keys = session.init(left, right)
        whole, dt_whole = _timed(session.whole_document)

        session.init(left, right)
        longest = 0.0
        t0 = time.perf_counter()
        for key in keys:
            _, dt = _timed(session.step, key)
            longest = max(longest, dt)
        dt_chunked = time.perf_counter() - t0
        same = "✓" if session.results == whole else "✗"
        session.cleanup()

        print(f"  {n:>5} keys: whole={dt_whole*1000:>8.1f}ms  "
              f"chunked={dt_chunked*1000:>8.1f}ms  "
              f"longest step={longest*1000:>6.2f}ms  {same}")
    print()


def benchmark_sequences():
    """Edit-script alignment vs the positional fallback."""
    print("=" * 70)
    print("  §3  SEQUENCE ALIGNMENT")
    print("=" * 70)
    print()

    rng = random.Random(7)
    fallback = DiffConfig(sequence_length_threshold=0)
    for n in [100, 1000, 10000]:
        a = list(range(n))
        b = list(a)
        for _ in range(max(1, n // 100)):
            b.insert(rng.randrange(len(b)), -1)
        left, right = from_python(a), from_python(b)

        nodes, dt_myers = _timed(diff_values, left, right)
        positional, dt_pos = _timed(diff_values, left, right, fallback)

        print(f"  Length {n:>5}: edit script {dt_myers*1000:>8.1f}ms "
              f"{summarize(nodes)!r:<28} "
              f"positional {dt_pos*1000:>6.1f}ms {summarize(positional)!r}")
    print()


def benchmark_depth():
    """Documents nested past the depth cap."""
    print("=" * 70)
    print("  §4  DEPTH CAP")
    print("=" * 70)
    print()

    for depth in [50, 128, 300]:
        left, right = 1, 2
        for _ in range(depth):
            left, right = {"a": left}, {"a": right}
        (root,), dt = _timed(diff_values, from_python(left), from_python(right))
        levels = sum(1 for _ in iter_nodes([root]))
        print(f"  Depth {depth:>4}: {levels:>4} tree levels  "
              f"has_diff={root.has_diff}  time={dt*1000:.2f}ms")
    print()


def main():
    print()
    print("╔══════════════════════════════════════════════════════════════════════╗")
    print("║          STRUCTURAL YAML DIFF — BENCHMARK SUITE                      ║")
    print("║          structdiff v0.1.0                                           ║")
    print("╚══════════════════════════════════════════════════════════════════════╝")
    print()

    benchmark_config_diff()
    benchmark_chunked_vs_whole()
    benchmark_sequences()
    benchmark_depth()


if __name__ == "__main__":
    main()
