from __future__ import annotations

from concurrent.futures import Executor, Future, as_completed
import logging
import math
from typing import List, Optional, Sequence, Tuple, TypedDict

from billiard_errors import ConstructionError
from billiard_singularities import HyperbolicTracerLimits, next_hyperbolic_generation
from complex_number import Complex
from hyperbolic import HyperGeodesic, HyperPoint
from hyperbolic_tables import HyperbolicPolygonTable

_LOGGER = logging.getLogger(__name__)

GeodesicTuple = Tuple[float, float, float, float]


class WorkerRequest(TypedDict):
    id: int
    vertices: List[Tuple[float, float]]
    frontier: List[GeodesicTuple]
    iterations: int


class WorkerResponse(TypedDict):
    id: int
    singularities: List[GeodesicTuple]
    stillWorking: bool


def encode_geodesics(geodesics: Sequence[HyperGeodesic]) -> List[GeodesicTuple]:
    """Poincare coordinates ``(x1, y1, x2, y2)`` of each geodesic's endpoints."""
    return [
        (g.start.poincare.x, g.start.poincare.y, g.end.poincare.x, g.end.poincare.y)
        for g in geodesics
    ]


def decode_geodesics(rows: Sequence[Sequence[float]]) -> List[HyperGeodesic]:
    geodesics = []
    for row in rows:
        if len(row) != 4:
            raise ConstructionError(f"Geodesic rows need four coordinates, got {len(row)}")
        x1, y1, x2, y2 = row
        geodesics.append(
            HyperGeodesic(
                HyperPoint.from_poincare(Complex(x1, y1)),
                HyperPoint.from_poincare(Complex(x2, y2)),
            )
        )
    return geodesics


def build_request(
    job_id: int,
    table: HyperbolicPolygonTable,
    frontier: Sequence[HyperGeodesic],
    iterations: int,
) -> WorkerRequest:
    return {
        "id": job_id,
        "vertices": [v.poincare.to_tuple() for v in table.vertices],
        "frontier": encode_geodesics(frontier),
        "iterations": iterations,
    }


def handle_request(request: WorkerRequest) -> WorkerResponse:
    """
    Worker body: run ``iterations`` frontier generations on one chunk.

    The response carries every piece produced along the way, including the
    last generation.
    """
    table = HyperbolicPolygonTable(
        [HyperPoint.from_poincare(Complex.from_tuple(v)) for v in request["vertices"]]
    )
    frontier = tuple(decode_geodesics(request["frontier"]))
    limits = HyperbolicTracerLimits()
    singularities: List[HyperGeodesic] = []
    for _ in range(request["iterations"]):
        frontier = next_hyperbolic_generation(table, frontier, limits)
        singularities.extend(frontier)
        if not frontier:
            break
    return {
        "id": request["id"],
        "singularities": encode_geodesics(singularities),
        "stillWorking": False,
    }


def split_frontier(frontier: Sequence[HyperGeodesic], chunks: int) -> List[List[HyperGeodesic]]:
    if chunks < 1:
        raise ValueError(f"Chunk count must be positive, got {chunks}")
    size = max(1, int(math.ceil(len(frontier) / chunks)))
    return [list(frontier[i:i + size]) for i in range(0, len(frontier), size)]


class SingularityJobs:
    """
    Collects worker responses for the latest tracing job.

    Starting a job bumps the id; responses that carry any other id belong to
    a superseded job and are ignored. Nothing in flight is cancelled.
    """

    def __init__(self, executor: Executor, chunks: int = 4) -> None:
        self.executor = executor
        self.chunks = chunks
        self.job_id = 0
        self.working = 0
        self.singularities: List[HyperGeodesic] = []

    def start(
        self,
        table: HyperbolicPolygonTable,
        frontier: Sequence[HyperGeodesic],
        iterations: int,
    ) -> List[Future]:
        self.job_id += 1
        job_id = self.job_id
        self.singularities = list(frontier)
        chunks = split_frontier(frontier, self.chunks) if frontier else []
        self.working = len(chunks)
        _LOGGER.debug("Job %d: %d chunks of %d frontier pieces", job_id, len(chunks), len(frontier))
        futures = []
        for chunk in chunks:
            futures.append(self.executor.submit(handle_request, build_request(job_id, table, chunk, iterations)))
        return futures

    def accept(self, response: WorkerResponse) -> bool:
        """Merge ``response`` when it belongs to the latest job."""
        if response["id"] != self.job_id:
            _LOGGER.debug("Discarding stale response for job %d (latest %d)", response["id"], self.job_id)
            return False
        self.singularities.extend(decode_geodesics(response["singularities"]))
        if not response["stillWorking"]:
            self.working = max(0, self.working - 1)
        return True

    @property
    def done(self) -> bool:
        return self.working == 0

    def collect(self, futures: Sequence[Future], timeout: Optional[float] = None) -> List[HyperGeodesic]:
        """Feed finished responses to :meth:`accept` as they arrive; worker errors propagate."""
        for future in as_completed(futures, timeout=timeout):
            self.accept(future.result())
        return list(self.singularities)


__all__ = [
    "SingularityJobs",
    "WorkerRequest",
    "WorkerResponse",
    "build_request",
    "decode_geodesics",
    "encode_geodesics",
    "handle_request",
    "split_frontier",
]
