"""Shareable snapshot tokens and links.

A token is the snapshot's compact JSON, base64-encoded with the URL-safe
alphabet and without padding, so it can sit in a ``?data=`` query
parameter unchanged. Decoding is all-or-nothing: any malformed input
raises SnapshotImportError and nothing partial is returned.
"""
from __future__ import annotations

import base64
import binascii
import json
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from pydantic import ValidationError

from ..exceptions import SnapshotImportError
from ..models.labels import relationship_name
from ..models.person import now_ms
from ..models.snapshot import Snapshot
from .versioning import migrate

DATA_PARAM = "data"


def export_token(snapshot: Snapshot) -> str:
    """Encode a snapshot as a reversible URL-safe token."""
    encoded = base64.urlsafe_b64encode(snapshot.to_json().encode("utf-8"))
    return encoded.decode("ascii").rstrip("=")


def export_url(snapshot: Snapshot, base_url: str) -> str:
    """Embed the snapshot token in ``base_url``'s ``data`` query parameter."""
    parts = urlsplit(base_url)
    query = {k: v for k, v in parse_qs(parts.query, keep_blank_values=True).items() if k != DATA_PARAM}
    pairs = [(k, v) for k, values in query.items() for v in values]
    pairs.append((DATA_PARAM, export_token(snapshot)))
    return urlunsplit(parts._replace(query=urlencode(pairs)))


def parse_snapshot_json(text: str, *, now: int | None = None) -> Snapshot:
    """Validate and migrate a snapshot from its JSON text.

    Every person record must carry a non-empty string id; one bad record
    rejects the whole snapshot.
    """
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise SnapshotImportError(f"snapshot is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise SnapshotImportError("snapshot must be a JSON object")

    people = raw.get("people")
    if not isinstance(people, list):
        raise SnapshotImportError("snapshot has no people list")

    for position, record in enumerate(people):
        if not isinstance(record, dict):
            raise SnapshotImportError(f"person record {position} is not an object")
        person_id = record.get("id")
        if not isinstance(person_id, str) or not person_id:
            raise SnapshotImportError(f"person record {position} has no identifier")

    try:
        snapshot = Snapshot.model_validate(migrate(raw))
    except ValidationError as e:
        raise SnapshotImportError(f"snapshot failed validation: {e.error_count()} error(s)") from e

    return snapshot.stamped(now_ms() if now is None else now)


def decode_token(token: str, *, now: int | None = None) -> Snapshot:
    """Reverse ``export_token``."""
    cleaned = (token or "").strip()
    if not cleaned:
        raise SnapshotImportError("empty token")

    padded = cleaned + "=" * (-len(cleaned) % 4)
    try:
        data = base64.b64decode(padded, altchars=b"-_", validate=True)
        text = data.decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise SnapshotImportError(f"token is not decodable: {e}") from e

    return parse_snapshot_json(text, now=now)


def snapshot_from_url(url: str, *, now: int | None = None) -> Snapshot:
    """Decode the snapshot carried in a shared link."""
    values = parse_qs(urlsplit(url).query).get(DATA_PARAM)
    if not values:
        raise SnapshotImportError("no data parameter found in URL")
    return decode_token(values[0], now=now)


def sanitize_for_export(snapshot: Snapshot) -> Snapshot:
    """Privacy-safe copy: names replaced with generation labels."""
    people = tuple(
        person.model_copy(
            update={
                "given_name": relationship_name(person.generation),
                "family_name": None,
            }
        )
        for person in snapshot.people
    )
    return snapshot.model_copy(update={"people": people})
