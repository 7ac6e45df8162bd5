#!/usr/bin/env python3
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from pynostr.event import Event
from pynostr.key import PrivateKey


@dataclass(frozen=True)
class IncomingEvent:
    id: str
    kind: int
    tags: list[list[str]] = field(default_factory=list)
    pubkey: str = ""
    content: str = ""


def load_private_key(nsec: str) -> PrivateKey:
    value = str(nsec or "").strip()
    if not value.startswith("nsec1"):
        raise ValueError("expected a bech32 nsec private key")
    try:
        return PrivateKey.from_nsec(value)
    except Exception as exc:
        raise ValueError(f"invalid nsec: {exc}") from exc


def parse_incoming(payload: Any) -> IncomingEvent:
    if not isinstance(payload, dict):
        raise ValueError("event payload must be a JSON object")

    event_id = payload.get("id")
    if not isinstance(event_id, str) or not event_id.strip():
        raise ValueError("event is missing id")

    kind = payload.get("kind")
    if isinstance(kind, bool) or not isinstance(kind, int):
        raise ValueError("event kind must be an integer")

    raw_tags = payload.get("tags") or []
    if not isinstance(raw_tags, list):
        raise ValueError("event tags must be a list")
    tags: list[list[str]] = []
    for tag in raw_tags:
        if not isinstance(tag, list) or not all(isinstance(x, str) for x in tag):
            raise ValueError("event tags must be lists of strings")
        tags.append(list(tag))

    return IncomingEvent(
        id=event_id.strip(),
        kind=kind,
        tags=tags,
        pubkey=str(payload.get("pubkey", "")),
        content=str(payload.get("content", "")),
    )


def append_unique(tags: list[list[str]], tag: list[str]) -> None:
    """Skip ``tag`` when one with the same name and value is already present."""
    prefix = tag[:2]
    if any(existing[: len(prefix)] == prefix for existing in tags):
        return
    tags.append(list(tag))


def reply_tags(incoming: IncomingEvent) -> list[list[str]]:
    tags: list[list[str]] = []
    append_unique(tags, ["e", incoming.id, "", "reply"])
    for tag in incoming.tags:
        if tag and tag[0] == "e":
            append_unique(tags, tag)
    return tags


def build_reply(
    incoming: IncomingEvent,
    content: str,
    private_key: PrivateKey,
    created_at: int | None = None,
) -> dict[str, Any]:
    event = Event(
        content=content,
        pubkey=private_key.public_key.hex(),
        created_at=created_at if created_at is not None else int(time.time()),
        kind=incoming.kind,
        tags=reply_tags(incoming),
    )
    event.sign(private_key.hex())
    signed = event.to_dict()
    signed["kind"] = int(signed["kind"])
    return signed
