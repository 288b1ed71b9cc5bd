"""
Gateways — the only seams through which the engine touches the outside
world: file access and LLM completion.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from .exceptions import OperationCancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag that can also be awaited."""

    def __init__(self) -> None:
        self._cancelled = False
        self._event: asyncio.Event | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelled("Operation cancelled")

    async def wait(self) -> None:
        """Block until :meth:`cancel` is called."""
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()


# ── File access ──

class FileAccessGateway(ABC):
    """Asynchronous file access used by the pending edit store and the
    context selector.

    ``read_file`` raises :class:`FileNotFoundError` or :class:`OSError`;
    ``write_file`` and ``delete_file`` raise :class:`OSError`.
    """

    @abstractmethod
    async def read_file(self, path: str) -> str:
        ...

    @abstractmethod
    async def write_file(self, path: str, content: str) -> None:
        ...

    @abstractmethod
    async def delete_file(self, path: str) -> None:
        ...


class LocalFileGateway(FileAccessGateway):
    """File access on the local filesystem.

    Blocking calls are moved off the event loop with ``asyncio.to_thread``.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    async def read_file(self, path: str) -> str:
        return await asyncio.to_thread(self._read_sync, path)

    async def write_file(self, path: str, content: str) -> None:
        await asyncio.to_thread(self._write_sync, path, content)

    async def delete_file(self, path: str) -> None:
        await asyncio.to_thread(os.remove, path)

    def _read_sync(self, path: str) -> str:
        with open(path, "r", encoding=self._encoding, newline="") as f:
            return f.read()

    def _write_sync(self, path: str, content: str) -> None:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        tmp_path = path + ".chatpatch_tmp"
        try:
            with open(tmp_path, "w", encoding=self._encoding, newline="") as f:
                f.write(content)
            os.replace(tmp_path, path)
        except OSError:
            # Clean up temp file on failure
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("[Files] Wrote %d chars to %s", len(content), path)


class InMemoryFileGateway(FileAccessGateway):
    """Dictionary-backed gateway for embedding and tests."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})

    async def read_file(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    async def write_file(self, path: str, content: str) -> None:
        self.files[path] = content

    async def delete_file(self, path: str) -> None:
        if path not in self.files:
            raise FileNotFoundError(path)
        del self.files[path]


# ── Completion ──

class CompletionGateway(ABC):
    """Chat-completion endpoint.

    Raises :class:`~chatpatch.exceptions.CompletionError` subclasses on
    failure and :class:`~chatpatch.exceptions.OperationCancelled` when the
    token fires before a reply arrives.
    """

    @abstractmethod
    async def request_completion(
        self,
        messages: list[dict[str, str]],
        cancellation_token: Optional[CancellationToken] = None,
    ) -> str:
        ...
