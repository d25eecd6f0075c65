"""Graph Store - the authoritative person collection.

The collection is an immutable tuple of frozen records. Every mutation
builds a new tuple, runs the relationship synchronizer over it and swaps it
in as one step, so a reader holding the previous tuple (a layout pass, an
open edit form) never sees a half-applied change.

Not-found is reported as a value (``None`` / ``False``). Structural
violations in a candidate collection raise GraphIntegrityError and leave
the store untouched.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from ..exceptions import GraphIntegrityError, SnapshotImportError
from ..models.person import PROTECTED_FIELDS, Person, new_id, now_ms
from ..models.snapshot import Snapshot
from ..persistence.sharing import decode_token, parse_snapshot_json, snapshot_from_url
from .integrity import structural_issues
from .sync import PARTNER_EVENT_FIELDS, synchronize, synchronize_all

if TYPE_CHECKING:
    from ..persistence.repository import SnapshotRepository

logger = structlog.get_logger(__name__)


class StoreEventKind(str, Enum):
    """Kinds of committed store mutations."""
    ADDED = "added"
    UPDATED = "updated"
    REPLACED = "replaced"
    DELETED = "deleted"
    CLEARED = "cleared"
    IMPORTED = "imported"
    ROOT_CHANGED = "root_changed"


@dataclass(frozen=True)
class StoreEvent:
    """Delivered to subscribers after a mutation is committed."""
    kind: StoreEventKind
    person_id: str | None
    people: tuple[Person, ...]


@dataclass(frozen=True)
class AddResult:
    """The new record plus the collection it was committed into."""
    person: Person
    people: tuple[Person, ...]


StoreEventHandler = Callable[[StoreEvent], None]

# Sentinel: leave the root pointer as it is
_KEEP = object()


def _without_parent(person: Person, parent_id: str) -> tuple[str, ...] | None:
    remaining = tuple(pid for pid in person.parent_ids or () if pid != parent_id)
    return remaining or None


class GraphStore:
    """In-memory family graph with an optional persistence adapter.

    Example:
        store = GraphStore(repository=InMemorySnapshotRepository())
        result = store.add_parent_of(store.root.id, {"given_name": "Ada"})
        store.update(result.person.id, {"familyName": "Lovelace"})
    """

    def __init__(
        self,
        people: Iterable[Person] | None = None,
        root_id: str | None = None,
        repository: SnapshotRepository | None = None,
        clock: Callable[[], int] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            people: Initial collection. When omitted the store loads from
                ``repository``, or starts from a single seeded root.
            root_id: Explicit root pointer for ``people``
            repository: Persistence adapter; saved to after every mutation
            clock: Epoch-milliseconds clock (injectable for tests)
            id_factory: Identifier generator (injectable for tests)
        """
        self._clock = clock or now_ms
        self._new_id = id_factory or new_id
        self._repository = repository
        self._handlers: list[StoreEventHandler] = []

        if people is None:
            if repository is not None:
                snapshot = repository.load(id_factory=self._new_id)
            else:
                snapshot = Snapshot.seeded(now=self._clock(), root_id=self._new_id())
            collection = snapshot.people
            root_id = root_id or snapshot.root_id
            self._created_at = snapshot.created_at
        else:
            collection = tuple(people)
            self._ensure_structure(collection)
            self._created_at = self._clock()

        self._people: tuple[Person, ...] = collection
        self._root_id = root_id if root_id and self.get(root_id) else None

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def people(self) -> tuple[Person, ...]:
        return self._people

    @property
    def root_id(self) -> str | None:
        return self._root_id

    @property
    def root(self) -> Person | None:
        return self.get(self._root_id) if self._root_id else None

    def get(self, person_id: str) -> Person | None:
        for person in self._people:
            if person.id == person_id:
                return person
        return None

    def children_of(self, person_id: str) -> list[Person]:
        return [p for p in self._people if p.has_parent(person_id)]

    def snapshot(self) -> Snapshot:
        """Serializable view of the current state."""
        return Snapshot(
            people=self._people,
            root_id=self._root_id,
            created_at=self._created_at,
            updated_at=self._clock(),
        )

    # =========================================================================
    # Subscribers
    # =========================================================================

    def subscribe(self, handler: StoreEventHandler) -> Callable[[], None]:
        """Register a handler for committed mutations.

        Returns:
            A callable that removes the handler again
        """
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def _emit(self, event: StoreEvent) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error("store.handler_failed", kind=event.kind.value, error=str(e), exc_info=True)

    # =========================================================================
    # Commit protocol
    # =========================================================================

    def _ensure_structure(self, people: tuple[Person, ...]) -> None:
        issues = structural_issues(people)
        if issues:
            first = issues[0]
            raise GraphIntegrityError(first.message, list(first.person_ids))

    def _commit(
        self,
        people: tuple[Person, ...],
        kind: StoreEventKind,
        person_id: str | None = None,
        *,
        root_id: Any = _KEEP,
        created_at: int | None = None,
    ) -> tuple[Person, ...]:
        """Persist first, then swap state in; a failed save changes nothing."""
        root_id = self._root_id if root_id is _KEEP else root_id
        if root_id and not any(p.id == root_id for p in people):
            logger.info("store.root_cleared", root_id=root_id)
            root_id = None
        created_at = self._created_at if created_at is None else created_at

        if self._repository is not None:
            self._repository.save(
                Snapshot(people=people, root_id=root_id, created_at=created_at, updated_at=self._clock())
            )

        self._people = people
        self._root_id = root_id
        self._created_at = created_at

        logger.debug("store.committed", kind=kind.value, person_id=person_id, people=len(people))
        self._emit(StoreEvent(kind=kind, person_id=person_id, people=people))
        return people

    def _replace_person(self, people: Iterable[Person], person: Person) -> tuple[Person, ...]:
        return tuple(person if p.id == person.id else p for p in people)

    def _new_person(self, data: Mapping[str, Any] | None, now: int, **fields: Any) -> Person:
        payload = {
            k: v for k, v in Person.canonical_keys(data or {}).items() if k not in PROTECTED_FIELDS
        }
        payload.update(fields)
        return Person.model_validate(
            {**payload, "id": self._new_id(), "created_at": now, "updated_at": now}
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, data: Mapping[str, Any] | None = None) -> AddResult:
        """Create a person with a fresh id; ``created_at == updated_at == now``.

        The returned collection already contains the new record, so callers
        can chain further edits against its id immediately.
        """
        now = self._clock()
        person = self._new_person(data, now)
        people = synchronize((*self._people, person), person, now=now)
        self._commit(people, StoreEventKind.ADDED, person.id)
        logger.info("store.added", person_id=person.id, generation=person.generation)
        return AddResult(person=person, people=people)

    def update(self, person_id: str, patch: Mapping[str, Any]) -> Person | None:
        """Shallow-merge ``patch`` into a person.

        Sequence fields in the patch replace the stored ones wholesale.

        Returns:
            The updated record, or None when ``person_id`` is unknown

        Raises:
            ValueError: If the patch names unknown or store-owned fields
            GraphIntegrityError: If the patch would create a parent cycle
        """
        existing = self.get(person_id)
        if existing is None:
            logger.info("store.not_found", operation="update", person_id=person_id)
            return None

        now = self._clock()
        updated = existing.patched(patch, updated_at=now)
        candidate = self._replace_person(self._people, updated)
        self._ensure_structure(candidate)

        self._commit(synchronize(candidate, updated, now=now), StoreEventKind.UPDATED, person_id)
        return updated

    def batch_replace(self, people: Iterable[Person]) -> tuple[Person, ...]:
        """Swap in a whole new collection as a single atomic step.

        Raises:
            GraphIntegrityError: If the collection has duplicate ids,
                self-parenting or a parent cycle. Nothing changes.
        """
        candidate = tuple(people)
        self._ensure_structure(candidate)
        synced = synchronize_all(candidate, now=self._clock())
        logger.info("store.replaced", people=len(synced))
        return self._commit(synced, StoreEventKind.REPLACED)

    def delete(self, person_id: str) -> bool:
        """Remove a person and every reference to them.

        Remaining people lose ``person_id`` from their parents (the field is
        dropped once empty) and any marriage or divorce pointing at them.
        """
        if self.get(person_id) is None:
            logger.info("store.not_found", operation="delete", person_id=person_id)
            return False

        now = self._clock()
        remaining = []
        for person in self._people:
            if person.id == person_id:
                continue

            changes: dict[str, Any] = {}
            if person.has_parent(person_id):
                changes["parent_ids"] = _without_parent(person, person_id)
            for kind in PARTNER_EVENT_FIELDS:
                events = getattr(person, kind)
                kept = tuple(e for e in events if e.partner_id != person_id)
                if len(kept) != len(events):
                    changes[kind] = kept

            if changes:
                person = person.model_copy(update={**changes, "updated_at": now})
            remaining.append(person)

        self._commit(tuple(remaining), StoreEventKind.DELETED, person_id)
        logger.info("store.deleted", person_id=person_id)
        return True

    def clear(self) -> Person:
        """Reset to a single fresh root person at generation 0."""
        now = self._clock()
        root = Person(id=self._new_id(), generation=0, created_at=now, updated_at=now)
        self._commit((root,), StoreEventKind.CLEARED, root.id, root_id=root.id, created_at=now)
        logger.info("store.cleared", root_id=root.id)
        return root

    def set_root(self, person_id: str) -> bool:
        if self.get(person_id) is None:
            return False
        self._commit(self._people, StoreEventKind.ROOT_CHANGED, person_id, root_id=person_id)
        return True

    # =========================================================================
    # Editing workflows
    # =========================================================================

    def add_parent_of(self, child_id: str, data: Mapping[str, Any] | None = None) -> AddResult | None:
        """Create a new parent one generation above ``child_id`` and link it.

        ``data`` seeds the new record (names, events); its generation is
        always ``child.generation + 1``.
        """
        child = self.get(child_id)
        if child is None:
            logger.info("store.not_found", operation="add_parent_of", person_id=child_id)
            return None

        now = self._clock()
        parent = self._new_person(data, now, generation=child.generation + 1)
        linked = child.model_copy(
            update={"parent_ids": (*(child.parent_ids or ()), parent.id), "updated_at": now}
        )
        candidate = (*self._replace_person(self._people, linked), parent)
        self._ensure_structure(candidate)
        people = synchronize(candidate, parent, now=now)

        self._commit(people, StoreEventKind.ADDED, parent.id)
        logger.info("store.parent_added", person_id=parent.id, child_id=child_id)
        return AddResult(person=parent, people=people)

    def add_child_of(self, parent_id: str, data: Mapping[str, Any] | None = None) -> AddResult | None:
        """Create a new child of ``parent_id`` one generation below it."""
        parent = self.get(parent_id)
        if parent is None:
            logger.info("store.not_found", operation="add_child_of", person_id=parent_id)
            return None

        now = self._clock()
        child = self._new_person(data, now, generation=parent.generation - 1, parent_ids=(parent_id,))
        people = synchronize((*self._people, child), child, now=now)

        self._commit(people, StoreEventKind.ADDED, child.id)
        logger.info("store.child_added", person_id=child.id, parent_id=parent_id)
        return AddResult(person=child, people=people)

    def save_with_children(
        self,
        person_id: str | None,
        patch: Mapping[str, Any],
        child_ids: Iterable[str] = (),
    ) -> Person | None:
        """Apply an edit form's result in one atomic swap.

        The person is created (``person_id=None``) or patched, every selected
        child gains the person as a parent, and every current child that was
        not selected loses them.

        Returns:
            The saved person, or None when ``person_id`` is unknown

        Raises:
            GraphIntegrityError: If the edit would create a parent cycle
        """
        now = self._clock()
        selected = set(child_ids)

        if person_id is None:
            person = self._new_person(patch, now)
            people = [*self._people, person]
            kind = StoreEventKind.ADDED
        else:
            existing = self.get(person_id)
            if existing is None:
                logger.info("store.not_found", operation="save_with_children", person_id=person_id)
                return None
            person = existing.patched(patch, updated_at=now)
            people = list(self._replace_person(self._people, person))
            kind = StoreEventKind.UPDATED

        for position, other in enumerate(people):
            if other.id == person.id:
                continue
            is_child = other.has_parent(person.id)
            if other.id in selected and not is_child:
                parent_ids = (*(other.parent_ids or ()), person.id)
            elif other.id not in selected and is_child:
                parent_ids = _without_parent(other, person.id)
            else:
                continue
            people[position] = other.model_copy(update={"parent_ids": parent_ids, "updated_at": now})

        candidate = tuple(people)
        self._ensure_structure(candidate)
        self._commit(synchronize(candidate, person, now=now), kind, person.id)
        logger.info("store.saved", person_id=person.id, children=len(selected))
        return person

    # =========================================================================
    # Import
    # =========================================================================

    def import_json(self, text: str) -> bool:
        return self._import(lambda: parse_snapshot_json(text, now=self._clock()))

    def import_token(self, token: str) -> bool:
        return self._import(lambda: decode_token(token, now=self._clock()))

    def import_url(self, url: str) -> bool:
        return self._import(lambda: snapshot_from_url(url, now=self._clock()))

    def _import(self, decode: Callable[[], Snapshot]) -> bool:
        """All-or-nothing: on any failure the store is left untouched."""
        try:
            snapshot = decode()
            self._ensure_structure(snapshot.people)
        except (SnapshotImportError, GraphIntegrityError) as e:
            logger.warning("import.rejected", reason=str(e))
            return False

        people = synchronize_all(snapshot.people, now=self._clock())
        self._commit(
            people,
            StoreEventKind.IMPORTED,
            root_id=snapshot.root_id,
            created_at=snapshot.created_at,
        )
        logger.info("import.completed", people=len(people), version=snapshot.version)
        return True
