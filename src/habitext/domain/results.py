"""Hook results: the explicit update kinds an extension may return.

A hook answers a lifecycle event with exactly one of:

- :class:`NoUpdate`: nothing to persist (``None`` is accepted as shorthand).
- :class:`Seed`: the blob becomes the whole namespace content (overwrite).
- :class:`Patch`: independent field-sets, one per dotted path under the
  extension's namespace. Last write wins at each path; values are never
  accumulated.

The merge step dispatches on the result type, never on the shape of the data.
Payload values must be JSON values. A date or a custom object fails at
construction, inside the hook that built it.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, JsonValue


class NoUpdate(BaseModel):
    """The hook observed the event but has nothing to write."""

    model_config = {"frozen": True}

    kind: Literal["none"] = "none"


class Seed(BaseModel):
    """Replace the extension's namespace with ``blob``."""

    model_config = {"frozen": True}

    kind: Literal["seed"] = "seed"
    blob: dict[str, JsonValue] = Field(default_factory=dict)


class Patch(BaseModel):
    """Set each ``path -> value`` pair under the extension's namespace.

    Paths are dotted. Fully qualified paths (``integrations.<name>.field``)
    and paths relative to the namespace (``field``) are both accepted.
    """

    model_config = {"frozen": True}

    kind: Literal["patch"] = "patch"
    values: dict[str, JsonValue] = Field(default_factory=dict)


HookResult = Annotated[NoUpdate | Seed | Patch, Field(discriminator="kind")]

NO_UPDATE = NoUpdate()


def is_update(result: object) -> bool:
    """True for a Seed or a non-empty Patch."""
    if isinstance(result, Seed):
        return True
    return isinstance(result, Patch) and bool(result.values)
