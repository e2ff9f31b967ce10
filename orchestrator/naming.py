from __future__ import annotations

import re

from orchestrator.services.errors import MalformedInput

# Helm rejects release names longer than 53 characters.
MAX_INSTANCE_NAME_LEN = 53

INSTANCE_NAME_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
_DISALLOWED_RE = re.compile(r"[^a-z0-9-]+")
_HYPHEN_RUN_RE = re.compile(r"-{2,}")


def slugify_token(value: str) -> str:
    lowered = value.strip().lower()
    replaced = _DISALLOWED_RE.sub("-", lowered)
    collapsed = _HYPHEN_RUN_RE.sub("-", replaced)
    return collapsed.strip("-")


def is_valid_instance_name(value: str) -> bool:
    return len(value) <= MAX_INSTANCE_NAME_LEN and bool(INSTANCE_NAME_RE.fullmatch(value))


def normalize_instance_name(raw_name: str | None) -> str:
    """Turn user input into a name usable as release name, namespace and host label.

    ``"My Store!!"`` becomes ``"my-store"``. Raises ``MalformedInput`` when
    nothing usable is left or the result is too long for Helm.
    """
    if raw_name is None:
        raise MalformedInput("Instance name is required")
    name = slugify_token(raw_name)
    if not name:
        raise MalformedInput(f"Instance name {raw_name!r} contains no usable characters")
    if len(name) > MAX_INSTANCE_NAME_LEN:
        raise MalformedInput(
            f"Instance name {name!r} is longer than {MAX_INSTANCE_NAME_LEN} characters"
        )
    if not is_valid_instance_name(name):
        raise MalformedInput(f"Instance name {name!r} is not a valid DNS label")
    return name
