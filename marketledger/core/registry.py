"""Item Registry collaborator — unique item ownership and operator approval.

The Marketplace Ledger does not own items; it consumes an ``ItemRegistry``
through four calls (``address``, ``holder_of``, ``is_approved_for_all``,
``transfer_from``).  A ``RegistryDirectory`` resolves the ``registry_ref``
recorded on a listing to the registry instance that serves it.

``InMemoryItemRegistry`` is a complete reference registry (mint, balances,
token URIs, operator approval) used by the demo and the test-suite.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from marketledger.core.errors import ExternalTransferFailed, TransferRejected
from marketledger.core.hasher import derive_address

logger = logging.getLogger(__name__)


@runtime_checkable
class ItemRegistry(Protocol):
    """Interface the Marketplace Ledger consumes from an item registry."""

    @property
    def address(self) -> str: ...

    def holder_of(self, token_id: int) -> str: ...

    def is_approved_for_all(self, holder: str, operator: str) -> bool: ...

    def transfer_from(
        self, operator: str, sender: str, recipient: str, token_id: int
    ) -> None: ...


class RegistryDirectory:
    """Resolves ``registry_ref`` values to reachable ``ItemRegistry`` objects."""

    def __init__(self, registries: list[ItemRegistry] | None = None) -> None:
        self._registries: dict[str, ItemRegistry] = {}
        for registry in registries or []:
            self.register(registry)

    def register(self, registry: ItemRegistry) -> None:
        """Make *registry* reachable under its ``address``."""
        if not isinstance(registry, ItemRegistry):
            raise TypeError(
                f"{type(registry).__name__} does not implement ItemRegistry"
            )
        self._registries[registry.address] = registry
        logger.debug("Registered item registry %s", registry.address)

    def resolve(self, registry_ref: str) -> ItemRegistry:
        """Return the registry for *registry_ref*.

        Raises
        ------
        ExternalTransferFailed
            If no registry is reachable under that reference.
        """
        registry = self._registries.get(registry_ref)
        if registry is None:
            raise ExternalTransferFailed(
                f"Item registry {registry_ref!r} is not reachable"
            )
        return registry

    def __contains__(self, registry_ref: object) -> bool:
        return registry_ref in self._registries

    def __len__(self) -> int:
        return len(self._registries)


class InMemoryItemRegistry:
    """Reference item collection with minting and operator approvals.

    Token ids are assigned sequentially from 1.  Every holder may grant an
    operator blanket approval to move all of its items.

    Parameters
    ----------
    name, symbol:
        Collection metadata.
    address:
        Identity of the collection.  Derived from *name* and *symbol* when
        omitted.

    Examples
    --------
    >>> nft = InMemoryItemRegistry()
    >>> nft.mint("0xalice", "ipfs://meta/1")
    1
    >>> nft.holder_of(1)
    '0xalice'
    >>> nft.balance_of("0xalice")
    1
    """

    def __init__(
        self,
        name: str = "Dapp NFT",
        symbol: str = "DAPP",
        address: str | None = None,
    ) -> None:
        self.name = name
        self.symbol = symbol
        self._address = address or derive_address("registry", name, symbol)
        self._lock = threading.RLock()
        self._holders: dict[int, str] = {}
        self._uris: dict[int, str] = {}
        self._balances: dict[str, int] = {}
        self._operators: dict[str, set[str]] = {}
        self._token_count = 0

    @property
    def address(self) -> str:
        return self._address

    @property
    def token_count(self) -> int:
        """Number of tokens ever minted."""
        return self._token_count

    # -- Minting ------------------------------------------------------------

    def mint(self, minter: str, uri: str) -> int:
        """Mint a new token to *minter* with metadata *uri*; return its id."""
        with self._lock:
            self._token_count += 1
            token_id = self._token_count
            self._holders[token_id] = minter
            self._uris[token_id] = uri
            self._balances[minter] = self._balances.get(minter, 0) + 1
        logger.debug("Minted token %d of %s to %s", token_id, self.symbol, minter)
        return token_id

    # -- Queries ------------------------------------------------------------

    def holder_of(self, token_id: int) -> str:
        """Current holder of *token_id*.

        Raises ``KeyError`` for a token that was never minted.
        """
        try:
            return self._holders[token_id]
        except KeyError:
            raise KeyError(f"Token {token_id} does not exist in {self.symbol}") from None

    def token_uri(self, token_id: int) -> str:
        """Metadata URI recorded at mint time."""
        try:
            return self._uris[token_id]
        except KeyError:
            raise KeyError(f"Token {token_id} does not exist in {self.symbol}") from None

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def is_approved_for_all(self, holder: str, operator: str) -> bool:
        return operator in self._operators.get(holder, set())

    # -- Approval & transfer ------------------------------------------------

    def set_approval_for_all(self, holder: str, operator: str, approved: bool) -> None:
        """Grant or revoke *operator*'s right to move all of *holder*'s items."""
        if holder == operator:
            raise TransferRejected("Cannot approve self as operator")
        with self._lock:
            operators = self._operators.setdefault(holder, set())
            if approved:
                operators.add(operator)
            else:
                operators.discard(operator)

    def transfer_from(
        self, operator: str, sender: str, recipient: str, token_id: int
    ) -> None:
        """Move *token_id* from *sender* to *recipient* on *operator*'s behalf.

        Raises
        ------
        TransferRejected
            If the token does not exist, *sender* is not its holder, or
            *operator* is neither the holder nor an approved operator.
        """
        with self._lock:
            holder = self._holders.get(token_id)
            if holder is None:
                raise TransferRejected(f"Token {token_id} does not exist")
            if holder != sender:
                raise TransferRejected(
                    f"Transfer of token {token_id} from incorrect holder {sender}"
                )
            if operator != holder and not self.is_approved_for_all(holder, operator):
                raise TransferRejected(
                    f"{operator} is not holder nor approved for token {token_id}"
                )
            self._holders[token_id] = recipient
            self._balances[sender] -= 1
            self._balances[recipient] = self._balances.get(recipient, 0) + 1
