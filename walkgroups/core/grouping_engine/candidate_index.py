"""
Candidate index for the formation pass.

Buckets the pool by a coarse spatial grid (local tangent plane, cell = max group radius)
and by rounded start time, so that neighbor queries touch only nearby buckets
instead of the whole pool.
"""

import math
from collections import defaultdict
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from walkgroups.core.geo import haversine_m_many, to_local_meters
from walkgroups.domain.models import BookingCandidate, Coordinate

BucketKey = Tuple[int, int, int]

PROJECTION_MARGIN = 1.01


def start_minutes(candidate: BookingCandidate) -> float:
    return candidate.desired_start.timestamp() / 60.0


class CandidateIndex:
    """Read-only index over a candidate arena. Positions are indices into `candidates`."""

    def __init__(
        self,
        candidates: Sequence[BookingCandidate],
        cell_size_m: float,
        time_bucket_minutes: float,
    ):
        if cell_size_m <= 0 or time_bucket_minutes <= 0:
            raise ValueError("cell_size_m and time_bucket_minutes must be positive")
        self.candidates: List[BookingCandidate] = list(candidates)
        self.cell_size_m = float(cell_size_m)
        self.time_bucket_minutes = float(time_bucket_minutes)
        self._positions: Dict[str, int] = {
            c.candidate_id: i for i, c in enumerate(self.candidates)
        }

        n = len(self.candidates)
        self._lats = np.array([c.coordinate.lat for c in self.candidates], dtype=float)
        self._lngs = np.array([c.coordinate.lng for c in self.candidates], dtype=float)
        self._minutes = np.array([start_minutes(c) for c in self.candidates], dtype=float)
        self._ref_lat = float(self._lats.mean()) if n else 0.0
        self._ref_lng = float(self._lngs.mean()) if n else 0.0
        xy = to_local_meters([c.coordinate for c in self.candidates], self._ref_lat, self._ref_lng)

        self._buckets: Dict[BucketKey, List[int]] = defaultdict(list)
        for i in range(n):
            key = self._key(xy[i, 0], xy[i, 1], self._minutes[i])
            self._buckets[key].append(i)

    def __len__(self) -> int:
        return len(self.candidates)

    def _key(self, y_m: float, x_m: float, minutes: float) -> BucketKey:
        return (
            int(math.floor(y_m / self.cell_size_m)),
            int(math.floor(x_m / self.cell_size_m)),
            int(math.floor(minutes / self.time_bucket_minutes)),
        )

    def position(self, candidate_id: str) -> int:
        return self._positions[candidate_id]

    def _query_key(self, coordinate: Coordinate, minutes: float) -> BucketKey:
        xy = to_local_meters([coordinate], self._ref_lat, self._ref_lng)
        return self._key(xy[0, 0], xy[0, 1], minutes)

    def _bucket_positions(
        self, center: BucketKey, query_lat: float, radius_m: float, window_minutes: float
    ) -> List[int]:
        # El plano tangente estira x lejos de ref_lat; el margen cubre esa distorsión
        stretch = math.cos(math.radians(self._ref_lat)) / max(
            math.cos(math.radians(query_lat)), 1e-6
        )
        span_y = int(math.ceil(radius_m * PROJECTION_MARGIN / self.cell_size_m))
        span_x = int(math.ceil(radius_m * max(1.0, stretch) * PROJECTION_MARGIN / self.cell_size_m))
        span_t = int(math.ceil(window_minutes / self.time_bucket_minutes))
        cy, cx, ct = center
        out: List[int] = []
        for dy in range(-span_y, span_y + 1):
            for dx in range(-span_x, span_x + 1):
                for dt in range(-span_t, span_t + 1):
                    out.extend(self._buckets.get((cy + dy, cx + dx, ct + dt), ()))
        out.sort()
        return out

    def nearby(
        self,
        candidate: BookingCandidate,
        radius_m: float,
        window_minutes: float,
        skip: Optional[np.ndarray] = None,
    ) -> Iterator[BookingCandidate]:
        """
        Lazily yield pool members within radius_m whose start lies within window_minutes
        of the query's start. Excludes the query itself and positions flagged in `skip`
        (boolean mask over the arena, e.g. already-clustered candidates).
        """
        q_minutes = start_minutes(candidate)
        self_pos = self._positions.get(candidate.candidate_id)
        near = self._bucket_positions(
            self._query_key(candidate.coordinate, q_minutes),
            candidate.coordinate.lat,
            radius_m,
            window_minutes,
        )
        if not near:
            return
        idx = np.array(near, dtype=int)
        dists = haversine_m_many(
            candidate.coordinate.lat, candidate.coordinate.lng, self._lats[idx], self._lngs[idx]
        )
        dts = np.abs(self._minutes[idx] - q_minutes)
        for k, j in enumerate(near):
            if j == self_pos:
                continue
            if skip is not None and skip[j]:
                continue
            if dists[k] <= radius_m and dts[k] <= window_minutes:
                yield self.candidates[j]
