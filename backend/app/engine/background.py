"""Background context manager: per-image background state across refinements.

States: default -> explicit -> removed, plus inherited (borrowed from the most
recently updated explicit chain when no chain matches an image at all).

The same logical image shows up under different URL shapes (a locally cached
copy, the generation service's hosted copy, the same URL with a new query
string), so lookups go through tiers:

    exact key -> same URL ignoring query -> shared path id -> inherited -> default

Losing the mapping silently resets the background, so every fuzzy hit links
the new key to the chain as an alias.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from urllib.parse import urlsplit, urlunsplit

from app.engine.chain_store import ChainStore, InMemoryChainStore
from app.engine.classifier import classify
from app.engine.vocabulary import ENVIRONMENT_DESCRIPTIONS
from app.errors import ChainNotFound
from app.models.chain import (
    DEFAULT_BACKGROUND,
    BackgroundKind,
    BackgroundState,
    HistoryEntry,
    RefinementChain,
)
from app.models.operations import BackgroundEdit, BaseOperation

logger = logging.getLogger(__name__)

_ID_TOKEN = re.compile(r"[A-Za-z0-9]+")
_MIN_ID_LENGTH = 8


class LookupTier(str, Enum):
    EXACT = "exact"
    QUERY_STRIPPED = "query_stripped"
    PATH_ID = "path_id"
    SEEDED = "seeded"
    INHERITED = "inherited"
    DEFAULT = "default"


@dataclass
class ChainLookupMiss:
    """No chain matched ``image_key``; ``resolved_by`` says what was used instead."""

    image_key: str
    resolved_by: LookupTier

    @property
    def message(self) -> str:
        return f"No refinement chain for {self.image_key!r}; using {self.resolved_by.value} background"


@dataclass
class ChainLookup:
    state: BackgroundState
    tier: LookupTier
    chain: RefinementChain | None = None
    miss: ChainLookupMiss | None = None


# -- Key helpers -----------------------------------------------------------------


def normalize_image_key(url: str) -> str:
    """Canonical form of an image URL: trimmed, lower-case scheme/host, no fragment."""
    url = url.strip()
    parts = urlsplit(url)
    if parts.scheme and parts.netloc:
        return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, ""))
    return url.split("#", 1)[0]


def strip_query(key: str) -> str:
    return key.split("?", 1)[0]


def image_identifiers(url: str) -> set[str]:
    """Id-like tokens in the URL path (at least 8 chars, containing a digit)."""
    path = urlsplit(strip_query(url.strip())).path or url
    return {
        tok.lower()
        for tok in _ID_TOKEN.findall(path)
        if len(tok) >= _MIN_ID_LENGTH and any(c.isdigit() for c in tok)
    }


def describe_background(description: str) -> str:
    """Expand a bare environment word ("forest") into a fuller description."""
    d = " ".join(description.split())
    return ENVIRONMENT_DESCRIPTIONS.get(d, d)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# -- Manager ---------------------------------------------------------------------


class BackgroundContextManager:
    """Owns every RefinementChain. All chain mutation goes through here."""

    def __init__(self, store: ChainStore | None = None) -> None:
        self.store = store if store is not None else InMemoryChainStore()
        self._locks: dict[str, asyncio.Lock] = {}

    # -- lookup --------------------------------------------------------------

    def _most_recent(self, chains: list[RefinementChain]) -> RefinementChain | None:
        if not chains:
            return None
        return max(enumerate(chains), key=lambda pair: (pair[1].updated_at, pair[0]))[1]

    def find_chain(self, image_key: str) -> tuple[RefinementChain | None, LookupTier]:
        """Chain for ``image_key`` via the exact, query-stripped and path-id tiers."""
        key = normalize_image_key(image_key)
        chain = self.store.get(key)
        if chain is not None:
            return chain, LookupTier.EXACT

        bare = strip_query(key)
        chains = self.store.all()
        matches = [c for c in chains if any(strip_query(k) == bare for k in c.keys)]
        if matches:
            return self._most_recent(matches), LookupTier.QUERY_STRIPPED

        ids = image_identifiers(key)
        if ids:
            matches = [c for c in chains if any(ids & image_identifiers(k) for k in c.keys)]
            if matches:
                return self._most_recent(matches), LookupTier.PATH_ID

        return None, LookupTier.DEFAULT

    def _inheritable(self) -> RefinementChain | None:
        explicit = [c for c in self.store.all() if c.background_state.kind == BackgroundKind.EXPLICIT]
        return self._most_recent(explicit)

    def lookup(self, image_key: str) -> ChainLookup:
        chain, tier = self.find_chain(image_key)
        if chain is not None:
            logger.info("Chain %s found for %r via %s lookup", chain.chain_id, image_key, tier.value)
            return ChainLookup(state=chain.background_state, tier=tier, chain=chain)

        donor = self._inheritable()
        if donor is not None:
            state = BackgroundState(
                kind=BackgroundKind.INHERITED,
                description=donor.background_state.description,
                is_explicitly_set=False,
            )
            miss = ChainLookupMiss(image_key, LookupTier.INHERITED)
            logger.warning("%s (borrowed from chain %s)", miss.message, donor.chain_id)
            return ChainLookup(state=state, tier=LookupTier.INHERITED, miss=miss)

        miss = ChainLookupMiss(image_key, LookupTier.DEFAULT)
        logger.info(miss.message)
        return ChainLookup(state=BackgroundState.default(), tier=LookupTier.DEFAULT, miss=miss)

    def get_current_state(self, image_key: str) -> BackgroundState:
        """Always defined: falls back to inherited, then to the default state."""
        return self.lookup(image_key).state

    # -- lifecycle -----------------------------------------------------------

    def get_or_create_chain(
        self, image_key: str, seed: BackgroundState | None = None
    ) -> tuple[RefinementChain, LookupTier]:
        """Existing chain for ``image_key``, or a new one.

        A new chain starts from ``seed`` (the background recorded in the
        image's generation metadata) when given, else from inheritance, else
        from the default state. Fuzzy hits register ``image_key`` as an alias.
        """
        key = normalize_image_key(image_key)
        found = self.lookup(key)
        if found.chain is not None:
            if found.tier != LookupTier.EXACT:
                self._link(found.chain, key)
            return found.chain, found.tier

        if seed is not None:
            state, tier = seed.model_copy(), LookupTier.SEEDED
        else:
            state, tier = found.state, found.tier
        chain = RefinementChain(key=key, background_state=state)
        self.store.put(chain)
        logger.info("Created chain %s for %r (%s background)", chain.chain_id, key, tier.value)
        return chain, tier

    def _link(self, chain: RefinementChain, key: str) -> None:
        if key in chain.keys:
            return
        chain.aliases.append(key)
        self.store.put(chain)
        logger.info("Linked %r to chain %s", key, chain.chain_id)

    def register_alias(self, image_key: str, alias: str) -> RefinementChain:
        """Make ``alias`` (e.g. a refinement's result URL) resolve to ``image_key``'s chain."""
        chain, _ = self.get_or_create_chain(image_key)
        self._link(chain, normalize_image_key(alias))
        return chain

    def delete_chain(self, image_key: str) -> RefinementChain:
        chain, _ = self.find_chain(image_key)
        if chain is None:
            raise ChainNotFound(image_key)
        self.store.delete(chain.chain_id)
        self._locks.pop(chain.chain_id, None)
        logger.info("Deleted chain %s for %r", chain.chain_id, image_key)
        return chain

    def clear(self) -> None:
        self.store.clear()
        self._locks.clear()

    def lock_for(self, chain: RefinementChain) -> asyncio.Lock:
        """Per-chain lock; concurrent refinements of one image run in arrival order."""
        lock = self._locks.get(chain.chain_id)
        if lock is None:
            lock = self._locks[chain.chain_id] = asyncio.Lock()
        return lock

    # -- transitions ---------------------------------------------------------

    def update_chain_background(
        self,
        chain_key: str,
        instruction: str,
        is_background_op: bool,
        operation: BaseOperation | None = None,
    ) -> RefinementChain:
        """Record one refinement. Background edits fully replace the state;
        anything else leaves it untouched."""
        chain, _ = self.get_or_create_chain(chain_key)
        prior = chain.background_state.model_copy()

        if is_background_op:
            op = operation if operation is not None else classify(instruction)
            if not isinstance(op, BackgroundEdit):
                raise ValueError(f"{instruction!r} is not a background edit")
            if op.is_removal:
                new_state = BackgroundState(
                    kind=BackgroundKind.REMOVED,
                    description=DEFAULT_BACKGROUND,
                    is_explicitly_set=True,
                )
            else:
                new_state = BackgroundState(
                    kind=BackgroundKind.EXPLICIT,
                    description=describe_background(op.target_description),
                    is_explicitly_set=True,
                )
            chain.background_state = new_state
            logger.info(
                "Chain %s background %s -> %s (%r)",
                chain.chain_id,
                prior.kind.value,
                new_state.kind.value,
                new_state.description,
            )

        chain.history.append(
            HistoryEntry(instruction=instruction, was_background_op=is_background_op, prior_state=prior)
        )
        chain.updated_at = _now()
        self.store.put(chain)
        return chain
