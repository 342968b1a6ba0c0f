"""
engine.py — Generates the unique editions of every edition group.

Per group, one attempt at a time:

  GENERATING  select traits for every plan entry (plan order)
  CHECKING    fingerprint the selection, check-and-insert into the registry
  ACCEPTED    composite, write PNG + JSON, advance the edition index
  COLLIDED    count a retry, maybe log it, try again

The group ends DONE when `size` editions are accepted, EXHAUSTED when the
retry counter reaches `max_retries`, or CANCELLED after `cancel()`. The retry
counter is cumulative for the whole group and never reset. An exhausted group
is a partial success: everything accepted so far stays on disk.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .catalog import LayerCatalog
from .compositor import composite
from .config import EditionConfig, EditionGroup, Settings
from .fingerprint import short_fingerprint
from .logging_utils import log_measure
from .metadata import EditionRecord, EmittedEdition, MetadataEmitter
from .registry import UniquenessRegistry
from .selector import NumpyRandomSource, Selection, TraitSelector

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    GENERATING = "generating"
    CHECKING = "checking"
    ACCEPTED = "accepted"
    COLLIDED = "collided"


class GroupStatus(str, Enum):
    DONE = "done"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


# ── Reports ───────────────────────────────────────────────────────────────────

@dataclass
class GroupReport:
    group_index: int
    group_fingerprint: str
    requested: int
    editions: List[EmittedEdition] = field(default_factory=list)
    retries: int = 0
    status: GroupStatus = GroupStatus.DONE

    @property
    def produced(self) -> int:
        return len(self.editions)

    @property
    def shortfall(self) -> int:
        return self.requested - self.produced


@dataclass
class RunReport:
    groups: List[GroupReport] = field(default_factory=list)

    @property
    def requested(self) -> int:
        return sum(g.requested for g in self.groups)

    @property
    def produced(self) -> int:
        return sum(g.produced for g in self.groups)

    @property
    def shortfall(self) -> int:
        return sum(g.shortfall for g in self.groups)

    @property
    def complete(self) -> bool:
        return all(g.status is GroupStatus.DONE for g in self.groups)


# ── Collision log suppression ─────────────────────────────────────────────────

def should_log_collision(retries: int) -> bool:
    """
    Whether the collision that brought the counter to `retries` is logged.

    Every collision below 1000, then every 100th below 3000, every 250th
    below 5000, and every 500th after that.
    """
    if retries < 1000:
        return True
    if retries < 3000:
        return retries % 100 == 0
    if retries < 5000:
        return retries % 250 == 0
    return retries % 500 == 0


def _log_collision(retries: int, fingerprint: str) -> None:
    logger.warning(
        f"DNA already exists! ({short_fingerprint(fingerprint)})\t|\t Retry! ({retries})"
    )


# ── Engine ────────────────────────────────────────────────────────────────────

# called after every accepted edition: (group report so far, new edition)
ProgressCallback = Callable[[GroupReport, EmittedEdition], None]


class EditionEngine:
    def __init__(
        self,
        catalog: LayerCatalog,
        settings: Settings,
        config: EditionConfig,
        selector: Optional[TraitSelector] = None,
        emitter: Optional[MetadataEmitter] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.catalog = catalog
        self.settings = settings
        self.config = config
        self.selector = selector or TraitSelector(NumpyRandomSource(settings.seed))
        self.emitter = emitter or MetadataEmitter(settings.destination_dir, config)
        self.on_progress = on_progress
        self._cancel = threading.Event()

    # ── Cancellation ─────────────────────────────────────────────────────────

    def cancel(self) -> None:
        """Stop issuing new attempts; the edition being written completes."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    # ── Generation ───────────────────────────────────────────────────────────

    def run(self) -> RunReport:
        """Process every group in configuration order."""
        report = RunReport()
        shared = UniquenessRegistry() if self.settings.shared_registry else None

        for i, group in enumerate(self.config.groups):
            if self.cancelled:
                report.groups.append(
                    GroupReport(
                        group_index=i,
                        group_fingerprint=group.fingerprint,
                        requested=group.size,
                        status=GroupStatus.CANCELLED,
                    )
                )
                continue
            registry = shared if shared is not None else UniquenessRegistry()
            report.groups.append(self.run_group(group, group_index=i, registry=registry))

        return report

    def run_group(
        self,
        group: EditionGroup,
        group_index: int = 0,
        registry: Optional[UniquenessRegistry] = None,
    ) -> GroupReport:
        registry = registry if registry is not None else UniquenessRegistry()
        report = GroupReport(
            group_index=group_index,
            group_fingerprint=group.fingerprint,
            requested=group.size,
        )
        self._warn_trait_space(group)

        label = f"Create images from layer configuration {short_fingerprint(group.fingerprint)}"
        with log_measure(label, logger):
            while report.produced < group.size:
                if report.retries >= self.settings.max_retries:
                    report.status = GroupStatus.EXHAUSTED
                    break
                if self.cancelled:
                    report.status = GroupStatus.CANCELLED
                    logger.warning(
                        f"Generation cancelled after {report.produced}/{group.size} edition(s)"
                    )
                    break

                selection = self.selector.select_group(self.catalog, group)
                state = self._check(selection, registry)

                if state is AttemptState.COLLIDED:
                    report.retries += 1
                    if should_log_collision(report.retries):
                        _log_collision(report.retries, selection.fingerprint)
                    continue

                edition = self._accept(selection, report.produced + 1, group)
                report.editions.append(edition)
                if self.on_progress is not None:
                    self.on_progress(report, edition)

        if report.status is GroupStatus.EXHAUSTED:
            logger.warning(
                f"Max retries ({self.settings.max_retries}) reached for group "
                f"{short_fingerprint(group.fingerprint)}: {report.produced}/{group.size} "
                f"edition(s) created, {report.shortfall} short"
            )
        return report

    def _check(self, selection: Selection, registry: UniquenessRegistry) -> AttemptState:
        if registry.add_if_absent(selection.fingerprint):
            return AttemptState.ACCEPTED
        return AttemptState.COLLIDED

    def _accept(self, selection: Selection, index: int, group: EditionGroup) -> EmittedEdition:
        image = composite(
            selection.paths,
            self.settings.image_size,
            resize=self.settings.resize,
        )
        record = EditionRecord(
            index=index,
            group_fingerprint=group.fingerprint,
            selection=selection,
            image=image,
        )
        return self.emitter.emit(record)

    def _warn_trait_space(self, group: EditionGroup) -> None:
        possible = self.catalog.combinations(group.order)
        if group.size > possible:
            logger.warning(
                f"Group {short_fingerprint(group.fingerprint)} requests {group.size} "
                f"edition(s) but only {possible} unique combination(s) exist"
            )
