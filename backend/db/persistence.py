"""
Persistence adapter.

The three collections are stored as independent JSON documents in the
``documents`` table. Loading happens once at startup; after that the engine
notifies the store of every committed change and the store writes the
affected documents in the background. The engine never waits for a write.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Set

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from core.errors import LoadError, PersistenceError
from core.state import (
    CUSTOMERS_KEY,
    DOCUMENT_KEYS,
    INVENTORY_KEY,
    SALES_KEY,
    AppState,
    CustomerStore,
    InventoryStore,
    SalesLedger,
)
from db.database import make_session_maker
from db.document import Document
from schemas.customers import Customer
from schemas.inventory import InventoryItem
from schemas.sales import Sale

logger = logging.getLogger(__name__)

_ADAPTERS = {
    INVENTORY_KEY: TypeAdapter(List[InventoryItem]),
    CUSTOMERS_KEY: TypeAdapter(List[Customer]),
    SALES_KEY: TypeAdapter(List[Sale]),
}


def decode_document(key: str, body: Optional[str]) -> list:
    """Parse one stored document. Missing means empty; malformed is fatal."""
    if body is None:
        return []
    try:
        raw = json.loads(body)
    except json.JSONDecodeError as e:
        raise LoadError(key, f"invalid JSON ({e})") from e
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise LoadError(key, f"expected a JSON array, got {type(raw).__name__}")
    try:
        return _ADAPTERS[key].validate_python(raw)
    except PydanticValidationError as e:
        raise LoadError(key, str(e)) from e


def decode_state(bodies: Mapping[str, Optional[str]]) -> AppState:
    records = {key: decode_document(key, bodies.get(key)) for key in DOCUMENT_KEYS}
    stores = {}
    for key, store_cls in (
        (INVENTORY_KEY, InventoryStore),
        (CUSTOMERS_KEY, CustomerStore),
        (SALES_KEY, SalesLedger),
    ):
        try:
            stores[key] = store_cls(records[key])
        except ValueError as e:
            raise LoadError(key, str(e)) from e
    state = AppState(stores[INVENTORY_KEY], stores[CUSTOMERS_KEY], stores[SALES_KEY])
    _check_histories(state)
    return state


def _check_histories(state: AppState) -> None:
    """Every purchase record must point at a sale billed to that customer."""
    for c in state.customers:
        for record in c.history:
            sale = state.sales.find(record.invoice)
            if sale is None:
                raise LoadError(
                    CUSTOMERS_KEY,
                    f"customer {c.id!r} history refers to unknown invoice {record.invoice!r}",
                )
            if sale.customer_id != c.id:
                raise LoadError(
                    CUSTOMERS_KEY,
                    f"invoice {record.invoice!r} in customer {c.id!r} history was billed to "
                    f"{sale.customer_id or 'a walk-in'}",
                )


def encode_state(state: AppState, keys: Iterable[str] = DOCUMENT_KEYS) -> Dict[str, str]:
    collections = {
        INVENTORY_KEY: state.inventory.items,
        CUSTOMERS_KEY: state.customers.customers,
        SALES_KEY: state.sales.sales,
    }
    out = {}
    for key in keys:
        out[key] = _ADAPTERS[key].dump_json(list(collections[key]), by_alias=True).decode()
    return out


class DocumentStore:
    def __init__(self, engine: AsyncEngine):
        self._session_maker = make_session_maker(engine)
        self._pending: Dict[str, str] = {}
        self._failed: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._lock = asyncio.Lock()
        self._unsubscribe = None

    @property
    def durable(self) -> bool:
        """False while the last write of some document failed."""
        return not self._failed

    @property
    def unsaved_keys(self) -> List[str]:
        return sorted(self._failed)

    async def read_documents(self) -> Dict[str, str]:
        async with self._session_maker() as session:
            res = await session.execute(select(Document).where(Document.key.in_(DOCUMENT_KEYS)))
            return {d.key: d.body for d in res.scalars().all()}

    async def load_state(self) -> AppState:
        try:
            bodies = await self.read_documents()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Cannot read stored documents: {e}") from e
        state = decode_state(bodies)
        logger.info(
            "Loaded %d item(s), %d customer(s), %d sale(s)",
            len(state.inventory), len(state.customers), len(state.sales),
        )
        return state

    def attach(self, engine) -> None:
        """Save after every committed mutation of ``engine``."""
        self.detach()
        self._unsubscribe = engine.subscribe(lambda changed: self.schedule_save(engine.state, changed))

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def schedule_save(self, state: AppState, keys: Iterable[str]) -> None:
        # Serialize now so the write reflects this exact commit.
        self._pending.update(encode_state(state, keys))
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; %s wait for flush()", sorted(self._pending))
            return
        task = loop.create_task(self._write_pending())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _write_pending(self) -> None:
        async with self._lock:
            if not self._pending:
                return
            batch, self._pending = self._pending, {}
            try:
                async with self._session_maker() as session:
                    now = datetime.now(timezone.utc)
                    for key, body in batch.items():
                        await session.merge(Document(key=key, body=body, updated_at=now))
                    await session.commit()
            except (SQLAlchemyError, OSError):
                # Keep the newest unsaved body for the next attempt.
                for key, body in batch.items():
                    self._pending.setdefault(key, body)
                self._failed.update(batch)
                logger.exception(
                    "Saving %s failed; in-memory state is not durably saved", sorted(batch)
                )
                return
            self._failed.difference_update(batch)
            logger.debug("Saved %s", sorted(batch))

    async def flush(self) -> bool:
        """Wait for scheduled writes and write anything still pending."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))
        await self._write_pending()
        return self.durable

    async def save_now(self) -> None:
        if not await self.flush():
            raise PersistenceError(f"Documents not saved: {', '.join(self.unsaved_keys)}")

    async def replace_all(self, state: AppState) -> None:
        self._pending.update(encode_state(state))
        await self.save_now()
