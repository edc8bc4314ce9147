"""Refinement chain storage.

A store only does exact lookups by key or alias; the multi-tier fuzzy
lookup lives in the background manager. ``JsonlChainStore`` appends one
snapshot line per write and replays the file on startup (last line per
chain wins, a ``{"chain_id": ..., "deleted": true}`` line is a tombstone).
After a replay, or once stale lines pile up, the file is rewritten with one
line per live chain.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from app.models.chain import RefinementChain

logger = logging.getLogger(__name__)


class ChainStore(ABC):
    @abstractmethod
    def get(self, key: str) -> RefinementChain | None:
        """Chain whose key or one of whose aliases equals ``key``."""

    @abstractmethod
    def put(self, chain: RefinementChain) -> None: ...

    @abstractmethod
    def delete(self, chain_id: str) -> bool: ...

    @abstractmethod
    def all(self) -> list[RefinementChain]: ...

    @abstractmethod
    def clear(self) -> None: ...

    def __len__(self) -> int:
        return len(self.all())


class InMemoryChainStore(ChainStore):
    def __init__(self) -> None:
        self._chains: dict[str, RefinementChain] = {}  # chain_id -> chain
        self._index: dict[str, str] = {}  # key/alias -> chain_id

    def get(self, key: str) -> RefinementChain | None:
        chain_id = self._index.get(key)
        return self._chains.get(chain_id) if chain_id else None

    def put(self, chain: RefinementChain) -> None:
        old = self._chains.get(chain.chain_id)
        if old is not None:
            for k in old.keys:
                self._index.pop(k, None)
        self._chains[chain.chain_id] = chain
        for k in chain.keys:
            self._index[k] = chain.chain_id

    def delete(self, chain_id: str) -> bool:
        chain = self._chains.pop(chain_id, None)
        if chain is None:
            return False
        for k in chain.keys:
            if self._index.get(k) == chain_id:
                del self._index[k]
        return True

    def all(self) -> list[RefinementChain]:
        return list(self._chains.values())

    def clear(self) -> None:
        self._chains.clear()
        self._index.clear()


class JsonlChainStore(InMemoryChainStore):
    """In-memory store mirrored to an append-only ``chains.jsonl``."""

    # Rewrite once the file holds this many lines per live chain.
    COMPACT_RATIO = 4
    COMPACT_MIN_LINES = 64

    def __init__(self, data_dir: Path | str) -> None:
        super().__init__()
        self._lines = 0
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.chains_file = self.data_dir / "chains.jsonl"
        self._load()

    def _load(self) -> None:
        if not self.chains_file.exists():
            return
        with open(self.chains_file, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                self._lines += 1
                data = json.loads(line)
                if data.get("deleted"):
                    super().delete(data["chain_id"])
                else:
                    super().put(RefinementChain.model_validate(data))
        logger.info("Loaded %d refinement chains from %s", len(self._chains), self.chains_file)
        if self._lines > len(self._chains):
            self._compact()

    def _compact(self) -> None:
        tmp = self.chains_file.with_name(self.chains_file.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            for chain in self._chains.values():
                f.write(chain.model_dump_json() + "\n")
        tmp.replace(self.chains_file)
        logger.debug("Compacted %s from %d to %d lines", self.chains_file, self._lines, len(self._chains))
        self._lines = len(self._chains)

    def _append(self, line: str) -> None:
        with open(self.chains_file, "a", encoding="utf-8") as f:
            f.write(line + "\n")
        self._lines += 1
        if self._lines > max(self.COMPACT_MIN_LINES, self.COMPACT_RATIO * len(self._chains)):
            self._compact()

    def put(self, chain: RefinementChain) -> None:
        super().put(chain)
        self._append(chain.model_dump_json())

    def delete(self, chain_id: str) -> bool:
        if not super().delete(chain_id):
            return False
        self._append(json.dumps({"chain_id": chain_id, "deleted": True}))
        return True

    def clear(self) -> None:
        super().clear()
        with open(self.chains_file, "w", encoding="utf-8"):
            pass
        self._lines = 0
