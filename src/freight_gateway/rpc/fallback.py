"""Ordered remote procedure adapters with version fallback.

Newer procedure versions accept parameters that older ones lack. A chain
lists the adapters newest first; when the remote reports that a procedure is
not deployed, the next adapter is tried. Any other outcome ends the walk.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from freight_gateway.errors import MissingRemoteProcedureError
from freight_gateway.rpc.client import RemoteProcedureClient, RemoteProcedureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcedureAdapter:
    """One remote procedure signature."""

    name: str
    params: Mapping[str, object] = field(default_factory=dict)
    label: str | None = None

    @property
    def display_name(self) -> str:
        return self.label or self.name


@dataclass(frozen=True)
class ChainResult:
    adapter: ProcedureAdapter
    data: Any


class ProcedureChain:
    """Tries adapters in order until one is deployed."""

    def __init__(self, adapters: Sequence[ProcedureAdapter]) -> None:
        if not adapters:
            raise ValueError("At least one procedure adapter is required")
        self._adapters = tuple(adapters)

    @classmethod
    def single(cls, name: str, params: Mapping[str, object]) -> "ProcedureChain":
        return cls([ProcedureAdapter(name=name, params=params)])

    @property
    def adapters(self) -> tuple[ProcedureAdapter, ...]:
        return self._adapters

    @property
    def procedure_names(self) -> tuple[str, ...]:
        return tuple(adapter.name for adapter in self._adapters)

    async def invoke(
        self,
        client: RemoteProcedureClient,
        *,
        access_token: str | None = None,
    ) -> ChainResult:
        """Invoke the first deployed adapter.

        Raises ``MissingRemoteProcedureError`` when no adapter is deployed and
        re-raises ``RemoteProcedureError`` for any other remote failure.
        """
        for index, adapter in enumerate(self._adapters):
            try:
                data = await client.call(
                    adapter.name,
                    adapter.params,
                    access_token=access_token,
                )
            except RemoteProcedureError as exc:
                if not exc.is_missing_procedure:
                    raise
                if index + 1 < len(self._adapters):
                    logger.info(
                        "Remote procedure %s not deployed, falling back to %s",
                        adapter.display_name,
                        self._adapters[index + 1].display_name,
                    )
                continue
            return ChainResult(adapter=adapter, data=data)

        logger.error("No deployed version among %s", ", ".join(self.procedure_names))
        raise MissingRemoteProcedureError(self.procedure_names)
