"""
Dashboard -- owner of the local snapshot.

Every change replaces the whole snapshot, bumps a revision counter,
persists, and notifies listeners. The sync engine is one such listener;
it uses the revision to tell local edits from remote applies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from .errors import ImportFormatError
from .models import Category, Link, LocalSnapshot, Team, TeamPayload, new_id
from .storage import DASHBOARD_KEY, DurableStore

logger = logging.getLogger("linkdash.dashboard")

ChangeListener = Callable[[int, LocalSnapshot], None]


class Dashboard:
    """Local application state with change notification.

    Args:
        store: Durable store the snapshot is persisted to.
    """

    def __init__(self, store: DurableStore) -> None:
        self._store = store
        self._listeners: list[ChangeListener] = []
        self._revision = 0
        self._snapshot = self._load()

    def _load(self) -> LocalSnapshot:
        data = self._store.get(DASHBOARD_KEY)
        if data is None:
            return LocalSnapshot()
        try:
            return LocalSnapshot.from_wire(data)
        except ImportFormatError as exc:
            logger.warning("Stored dashboard unreadable, starting empty: %s", exc)
            return LocalSnapshot()

    @property
    def snapshot(self) -> LocalSnapshot:
        """The latest snapshot."""
        return self._snapshot

    @property
    def revision(self) -> int:
        """Monotonic counter bumped on every replacement."""
        return self._revision

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def replace(self, snapshot: LocalSnapshot) -> int:
        """Swap in a new snapshot, persist it, and notify listeners.

        Returns:
            The revision assigned to the new snapshot.
        """
        self._snapshot = snapshot
        self._revision += 1
        self._store.set(DASHBOARD_KEY, snapshot.to_wire())
        revision = self._revision
        for listener in list(self._listeners):
            listener(revision, snapshot)
        return revision

    def _update(self, **changes: Any) -> int:
        return self.replace(self._snapshot.model_copy(update=changes))

    # -- mutations -----------------------------------------------------

    def add_category(self, name: str, mode: str = "neutral") -> Category:
        category = Category(name=name, mode=mode)
        self._update(categories=[*self._snapshot.categories, category])
        return category

    def add_link(
        self,
        category_id: str,
        url: str,
        title: str = "",
        custom_favicon: Optional[str] = None,
    ) -> Link:
        """Append a link to a category.

        Raises:
            KeyError: If no category has that id.
        """
        link = Link(url=url, title=title or url, custom_favicon=custom_favicon)
        categories = []
        found = False
        for cat in self._snapshot.categories:
            if cat.id == category_id:
                cat = cat.model_copy(update={"urls": [*cat.urls, link]})
                found = True
            categories.append(cat)
        if not found:
            raise KeyError(category_id)
        self._update(categories=categories)
        return link

    def select_team(self, name: str, category_ids: Iterable[str]) -> TeamPayload:
        """Build a shareable payload from chosen categories."""
        wanted = set(category_ids)
        chosen = [c for c in self._snapshot.categories if c.id in wanted]
        return TeamPayload(name=name, categories=chosen)

    def join_team(self, payload: TeamPayload) -> Team:
        """Import a team as an independent copy.

        Every team, category and link gets a fresh id. The sender's
        ids come from a separate id space and could otherwise collide
        with ours.
        """
        team = Team(
            id=new_id(),
            name=payload.name,
            categories=[
                cat.model_copy(
                    update={
                        "id": new_id(),
                        "urls": [u.model_copy(update={"id": new_id()}) for u in cat.urls],
                    }
                )
                for cat in payload.categories
            ],
            joined_at=datetime.now(timezone.utc),
        )
        self._update(teams=[*self._snapshot.teams, team])
        logger.info("Joined team '%s' (%d categories)", team.name, len(team.categories))
        return team

    def delete_team(self, team_id: str) -> bool:
        remaining = [t for t in self._snapshot.teams if t.id != team_id]
        if len(remaining) == len(self._snapshot.teams):
            return False
        self._update(teams=remaining)
        return True

    def import_data(self, data: Any) -> LocalSnapshot:
        """Replace everything with a backup, keeping current UI preferences
        where the backup has none.

        Raises:
            ImportFormatError: If the backup has no category list.
        """
        if not isinstance(data, dict) or not isinstance(data.get("categories"), list):
            raise ImportFormatError("Backup has no categories list")
        current = self._snapshot
        merged = {
            "theme": current.theme,
            "pattern": current.pattern,
            "linkLayout": current.link_layout,
            "teams": [],
        }
        merged.update({k: v for k, v in data.items() if v is not None})
        snapshot = LocalSnapshot.from_wire(merged)
        self.replace(snapshot)
        return snapshot
