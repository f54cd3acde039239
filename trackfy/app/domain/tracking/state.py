"""
In-memory tracking state.

Holds both collections loaded from the record store and keeps them in
sync: removing a record also removes it from every generation, refreshes
``total_codes`` and drops generations left empty.
"""

from dataclasses import dataclass, field
from typing import Callable, List
import logging

from trackfy.app.schemas.tracking import Generation, TrackingDocument, TrackingRecord

logger = logging.getLogger("trackfy.state")


@dataclass
class PruneResult:
    removed_records: List[TrackingRecord] = field(default_factory=list)
    removed_from_generations: int = 0
    removed_generations: List[Generation] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.removed_records or self.removed_from_generations or self.removed_generations)


@dataclass
class TrackingState:
    records: List[TrackingRecord] = field(default_factory=list)
    generations: List[Generation] = field(default_factory=list)
    dirty: bool = False

    @classmethod
    def from_document(cls, document: TrackingDocument) -> "TrackingState":
        return cls(records=list(document.records), generations=list(document.generations))

    def to_document(self) -> TrackingDocument:
        return TrackingDocument(records=self.records, generations=self.generations)

    def mark_dirty(self) -> None:
        self.dirty = True

    def add_generation(self, generation: Generation) -> None:
        """Newest generation goes first; its records are appended to the top-level list."""
        generation.total_codes = len(generation.codes)
        self.generations.insert(0, generation)
        self.records.extend(generation.codes)
        self.mark_dirty()

    def find_by_id(self, record_id: str):
        return next((r for r in self.records if r.id == record_id), None)

    def prune(self, should_remove: Callable[[TrackingRecord], bool]) -> PruneResult:
        """
        Remove every record matching ``should_remove`` from both collections.

        Generation membership is filtered independently of the top-level
        list, ``total_codes`` is refreshed, and empty generations are
        dropped.
        """
        result = PruneResult()

        kept = []
        for record in self.records:
            if should_remove(record):
                result.removed_records.append(record)
            else:
                kept.append(record)
        self.records = kept

        surviving = []
        for generation in self.generations:
            before = len(generation.codes)
            generation.codes = [r for r in generation.codes if not should_remove(r)]
            generation.total_codes = len(generation.codes)
            if before > generation.total_codes:
                result.removed_from_generations += before - generation.total_codes
                logger.debug(
                    "Generation %s: removed %s codes", generation.id, before - generation.total_codes
                )
            if generation.codes:
                surviving.append(generation)
            else:
                logger.info("Removing empty generation %s", generation.id)
                result.removed_generations.append(generation)
        self.generations = surviving

        if result.changed:
            self.mark_dirty()
        return result

    def remove_ids(self, ids) -> PruneResult:
        wanted = set(ids)
        return self.prune(lambda record: record.id in wanted)
