"""GitHub webhook event payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PushEvent:
    """The parts of a GitHub ``push`` payload the reload pipeline uses."""

    ref: str
    after: str
    before: str = ""
    repository: str = ""
    pusher: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PushEvent:
        """Build from a decoded push payload.

        Raises:
            ValueError: If ``ref`` or ``after`` is missing or not a non-empty string.
        """
        ref = data.get("ref")
        if not isinstance(ref, str) or not ref:
            raise ValueError("push payload is missing 'ref'")
        after = data.get("after")
        if not isinstance(after, str) or not after:
            raise ValueError("push payload is missing 'after'")

        repo = data.get("repository")
        pusher = data.get("pusher")
        return cls(
            ref=ref,
            after=after,
            before=str(data.get("before") or ""),
            repository=str(repo.get("full_name") or "") if isinstance(repo, dict) else "",
            pusher=str(pusher.get("name") or "") if isinstance(pusher, dict) else "",
        )


# Event name (X-GitHub-Event) -> payload parser
EVENT_PARSERS = {
    "push": PushEvent.from_dict,
}


def parse_event(event_name: str, payload: dict[str, Any]) -> Any:
    """Parse *payload* into the typed event for *event_name*.

    Event types without a parser are passed through as the raw dict.
    """
    parser = EVENT_PARSERS.get(event_name)
    if parser is None:
        return payload
    return parser(payload)
