"""
Frame Existence Resolver
========================

Turns a query into the ordered sequence of resolved frames.

Pipeline:
    Query
      → enumerate dates (frequency step, inclusive range)
      → derive candidate filenames (canonical + legacy noon alias)
      → ONE batched oracle call for every probe name
      → zip existence flags back onto candidates in date order
      → FrameSequence (placeholders kept for missing dates)

Design Rules:
    - Exactly one oracle round trip per resolve, regardless of range size
    - Output order is candidate (chronological) order, never oracle order
    - A failed batch raises ResolutionFailure; nothing partial is returned
    - No automatic retry; the caller re-resolves
    - The single-frame probe and the batch path apply the same alias policy
"""

import logging
from typing import Callable, Dict, List, Optional

from timelapse_engine.models.errors import ResolutionFailure
from timelapse_engine.models.frame import CandidateFrame, FrameSequence, ResolvedFrame
from timelapse_engine.models.oracle import BatchCheckEntry
from timelapse_engine.models.query import Query
from timelapse_engine.resolver.filenames import DEFAULT_EXTENSION, build_candidates
from timelapse_engine.resolver.oracle import ExistenceOracle
from timelapse_engine.storage.locator import ResourceLocator


logger = logging.getLogger(__name__)


ProgressCallback = Callable[[float], None]


class FrameResolver:
    """
    Resolves queries into frame sequences via an existence oracle.

    Attributes:
        oracle: Existence backend
        locator: URI builder for existing frames
        extension: Image file extension
        probe_aliases: Probe legacy filename spellings too

    Example:
        resolver = FrameResolver(oracle, ResourceLocator())
        sequence = await resolver.resolve(query)
        print(len(sequence.valid), "frames to play")
    """

    def __init__(
        self,
        oracle: ExistenceOracle,
        locator: ResourceLocator,
        extension: str = DEFAULT_EXTENSION,
        probe_aliases: bool = True,
    ) -> None:
        self.oracle = oracle
        self.locator = locator
        self.extension = extension
        self.probe_aliases = probe_aliases

    def candidates(self, query: Query) -> List[CandidateFrame]:
        """Candidate frames for a query, in chronological order."""
        return build_candidates(
            query,
            extension=self.extension,
            include_aliases=self.probe_aliases,
        )

    async def resolve(
        self,
        query: Query,
        on_progress: Optional[ProgressCallback] = None,
    ) -> FrameSequence:
        """
        Resolve a query.

        Args:
            query: Validated query
            on_progress: Called with assembly progress in [0, 100]

        Returns:
            FrameSequence with one entry per sampled date

        Raises:
            ResolutionFailure: If the batched existence call fails
        """
        candidates = self.candidates(query)
        if not candidates:
            return FrameSequence()

        probe_names = [name for c in candidates for name in c.probe_names]

        try:
            entries = await self.oracle.check_batch(query.location, probe_names)
        except ResolutionFailure:
            raise
        except Exception as e:
            raise ResolutionFailure(
                f"Batch existence check failed for {query.location}: {e}",
                location=query.location,
            ) from e

        existence = self._existence_map(probe_names, entries)

        frames: List[ResolvedFrame] = []
        total = len(candidates)
        for i, candidate in enumerate(candidates, start=1):
            frames.append(self._assemble(query.location, candidate, existence))
            if on_progress is not None:
                on_progress(i / total * 100)

        sequence = FrameSequence(frames=tuple(frames))
        logger.info(
            f"Resolved {query.location} ({query.frequency.value}, "
            f"{query.time_of_day.value}): {len(sequence.valid)} frames, "
            f"{sequence.missing_count} missing"
        )
        return sequence

    async def probe(self, location: str, candidate: CandidateFrame) -> ResolvedFrame:
        """
        Resolve a single candidate with per-name round trips.

        Spellings are tried canonical first; the first one found wins.
        """
        names = candidate.probe_names if self.probe_aliases else (candidate.filename,)
        existence: Dict[str, bool] = {}
        for name in names:
            existence[name] = await self.oracle.check(location, name)
            if existence[name]:
                break
        return self._assemble(location, candidate, existence)

    def _existence_map(
        self,
        requested: List[str],
        entries: List[BatchCheckEntry],
    ) -> Dict[str, bool]:
        """
        Match oracle entries back to requested filenames.

        Every requested filename appears exactly once in the result;
        those the oracle did not answer default to missing.
        """
        existence = dict.fromkeys(requested, False)
        for entry in entries:
            if entry.filename not in existence:
                logger.warning(f"Oracle answered for unrequested file: {entry.filename}")
                continue
            existence[entry.filename] = entry.exists

        unanswered = len(requested) - len({e.filename for e in entries} & existence.keys())
        if unanswered:
            logger.warning(f"Oracle left {unanswered} filenames unanswered, treating as missing")

        return existence

    def _assemble(
        self,
        location: str,
        candidate: CandidateFrame,
        existence: Dict[str, bool],
    ) -> ResolvedFrame:
        found = next(
            (name for name in candidate.probe_names if existence.get(name, False)),
            None,
        )
        if found is None:
            return ResolvedFrame(
                date=candidate.date,
                display_label=candidate.display_label,
                filename=candidate.filename,
                exists=False,
            )
        return ResolvedFrame(
            date=candidate.date,
            display_label=candidate.display_label,
            filename=found,
            exists=True,
            uri=self.locator.uri_for(location, found),
        )
