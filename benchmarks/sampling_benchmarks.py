"""Benchmark slice: surface sampling throughput, scalar interpreter vs JAX."""

from __future__ import annotations

import argparse
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
import json
from pathlib import Path
import statistics
import time

from parasurf import AuxiliaryVariable, SurfaceDefinition, compile_surface
from _bench_utils import host_metadata, sample_ms

WORKLOADS: dict[str, SurfaceDefinition] = {
    "plane": SurfaceDefinition(),
    "sphere": SurfaceDefinition(
        x="cos(U) * sin(V)",
        y="cos(V)",
        z="sin(U) * sin(V)",
        auxiliaries=(AuxiliaryVariable("U", "2*pi*u"), AuxiliaryVariable("V", "pi*v")),
    ),
    "torus": SurfaceDefinition(
        x="(1 + R*cos V) * cos U",
        y="R * sin V",
        z="(1 + R*cos V) * sin U",
        r="0.5 + 0.5*cos V",
        g="v",
        b="u",
        auxiliaries=(
            AuxiliaryVariable("U", "2*pi*u"),
            AuxiliaryVariable("V", "2*pi*v"),
            AuxiliaryVariable("R", "0.25 + 0.1*sin(3*U)"),
        ),
    ),
    "guarded": SurfaceDefinition(
        x="u",
        y="v==0 ? 1 : sin(1/v) * v",
        z="v",
        auxiliaries=(),
    ),
}


@dataclass(frozen=True)
class TimingStats:
    mean_ms: float
    stdev_ms: float
    p50_ms: float
    p95_ms: float
    min_ms: float


@dataclass(frozen=True)
class WorkloadRow:
    workload: str
    backend: str
    res_u: int
    res_v: int
    compile_ms: float
    timing: TimingStats


def _stats(rows: list[float]) -> TimingStats:
    if len(rows) < 2:
        return TimingStats(mean_ms=rows[0], stdev_ms=0.0, p50_ms=rows[0], p95_ms=rows[0], min_ms=rows[0])
    return TimingStats(
        mean_ms=statistics.mean(rows),
        stdev_ms=statistics.stdev(rows),
        p50_ms=statistics.median(rows),
        p95_ms=statistics.quantiles(rows, n=100, method="inclusive")[94],
        min_ms=min(rows),
    )


def run(*, res: int, samples: int, warmup: int, backends: tuple[str, ...]) -> list[WorkloadRow]:
    out: list[WorkloadRow] = []
    for name, definition in WORKLOADS.items():
        start = time.perf_counter()
        surface = compile_surface(definition)
        compile_ms = (time.perf_counter() - start) * 1e3
        for backend in backends:
            rows = sample_ms(
                lambda: surface.sample(res, res, backend=backend).positions,
                repeats=1,
                warmup=warmup,
                samples=samples,
            )
            out.append(
                WorkloadRow(
                    workload=name,
                    backend=backend,
                    res_u=res,
                    res_v=res,
                    compile_ms=compile_ms,
                    timing=_stats(rows),
                )
            )
    return out


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--res", type=int, default=64, help="samples along u and v")
    parser.add_argument("--samples", type=int, default=5)
    parser.add_argument("--warmup", type=int, default=1)
    parser.add_argument(
        "--backends",
        default="interpreter,jax",
        help="comma-separated sampling backends to time",
    )
    parser.add_argument(
        "--json-out",
        default="benchmarks/output/sampling_benchmarks.json",
        help="where to write machine-readable timings",
    )
    args = parser.parse_args()

    backends = tuple(part.strip() for part in args.backends.split(",") if part.strip())
    rows = run(res=args.res, samples=args.samples, warmup=args.warmup, backends=backends)

    for row in rows:
        print(
            f"{row.workload:<8} {row.backend:<12} {row.res_u}x{row.res_v}  "
            f"compile={row.compile_ms:.3f}ms  mean={row.timing.mean_ms:.3f}ms  p95={row.timing.p95_ms:.3f}ms"
        )

    payload = {
        "generated_at": datetime.now(UTC).isoformat(),
        "host": host_metadata(),
        "rows": [asdict(row) for row in rows],
    }
    path = Path(args.json_out)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
