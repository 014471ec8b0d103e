"""Relocate staged session files into a theme's permanent folder."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from ..media.public_media_links import build_public_url, root_relative_path
from ..media.theme_file_store import ThemeFileStore, resolve_inside_root, theme_relative_path
from .uploads_errors import PathTraversalError, PromotionSourceMissingError, SelfPromotionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PromotionPlan:
    source: Path
    destination: Path
    destination_url: str


def plan_promotion(
    source_url: str,
    session_id: str,
    theme_id: str,
    *,
    public_base: str,
    root: Path | str,
) -> PromotionPlan:
    """Compute where a staged file goes. Nothing is written."""
    if session_id == theme_id:
        raise SelfPromotionError(f"session {session_id} cannot be promoted onto itself")

    relative = root_relative_path(source_url, public_base)
    staged_prefix = theme_relative_path(session_id) + "/"
    if relative is None or not relative.casefold().startswith(staged_prefix.casefold()):
        raise PathTraversalError(f"not a staged file of session {session_id}: {source_url!r}")

    remainder = relative[len(staged_prefix):]
    destination_relative = theme_relative_path(theme_id, remainder)
    return PromotionPlan(
        source=resolve_inside_root(root, relative),
        destination=resolve_inside_root(root, destination_relative),
        destination_url=build_public_url(public_base, destination_relative),
    )


@dataclass(slots=True)
class AssetPromoter:
    """Moves files slot by slot; a failure leaves earlier slots moved."""

    store: ThemeFileStore
    log: logging.Logger = field(default_factory=lambda: logger)

    def promote(
        self,
        session_id: str,
        theme_id: str,
        sources: Mapping[str, str],
    ) -> dict[str, str]:
        """Move each ``slot_key -> staged url`` and return ``slot_key -> new url``."""
        promoted: dict[str, str] = {}
        for slot_key, source_url in sources.items():
            plan = plan_promotion(
                source_url,
                session_id,
                theme_id,
                public_base=self.store.paths.public_base,
                root=self.store.paths.root,
            )
            if not plan.source.is_file():
                self.log.error(
                    "uploads.promotion.source_missing",
                    extra={"session_id": session_id, "theme_id": theme_id, "slot_key": slot_key},
                )
                raise PromotionSourceMissingError(f"{slot_key}: {plan.source}")
            self.store.move(plan.source, plan.destination)
            promoted[slot_key] = plan.destination_url
            self.log.info(
                "uploads.promotion.moved",
                extra={"session_id": session_id, "theme_id": theme_id, "slot_key": slot_key},
            )
        return promoted
