import aiosqlite
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional
from .settings import settings

INIT_SQL = '''
CREATE TABLE IF NOT EXISTS orders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id TEXT NOT NULL,                 -- ORD-..., generated at checkout
    customer_name TEXT NOT NULL,
    customer_email TEXT NOT NULL,
    customer_phone TEXT,
    address TEXT,
    amount INTEGER NOT NULL,                -- VND
    status TEXT NOT NULL DEFAULT 'pending',
    payment_status TEXT NOT NULL DEFAULT 'unpaid',
    transaction_id TEXT,
    failed_reason TEXT,
    paid_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(order_id)
);
CREATE INDEX IF NOT EXISTS ix_orders_transaction_id ON orders(transaction_id);
'''

ORDER_COLUMNS = (
    "order_id", "customer_name", "customer_email", "customer_phone", "address", "amount",
    "status", "payment_status", "transaction_id", "failed_reason", "paid_at", "created_at", "updated_at",
)

# Columns a payment update may set
PATCHABLE_COLUMNS = frozenset({"payment_status", "status", "transaction_id", "failed_reason", "paid_at"})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteOrderStore:
    """Order store on a local SQLite file; patches are plain SETs and safe to repeat."""

    def __init__(self, db_file: Optional[str] = None):
        self.db_file = db_file or settings.DB_FILE

    async def init(self):
        Path(self.db_file).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_file) as db:
            for stmt in INIT_SQL.strip().split(';'):
                s = stmt.strip()
                if s:
                    await db.execute(s + ';')
            await db.commit()

    async def create_order(
        self,
        order_id: str,
        customer_name: str,
        customer_email: str,
        amount: int,
        customer_phone: str | None = None,
        address: str | None = None,
    ):
        now = _now()
        async with aiosqlite.connect(self.db_file) as db:
            await db.execute(
                """
                INSERT INTO orders (order_id, customer_name, customer_email, customer_phone, address, amount,
                                    created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (order_id, customer_name, customer_email, customer_phone, address, amount, now, now)
            )
            await db.commit()

    async def find_order_by_order_id(self, order_id: str) -> Optional[Dict[str, Any]]:
        async with aiosqlite.connect(self.db_file) as db:
            async with db.execute(
                f"SELECT {', '.join(ORDER_COLUMNS)} FROM orders WHERE order_id = ?",
                (order_id,)
            ) as cur:
                row = await cur.fetchone()
        if not row:
            return None
        return dict(zip(ORDER_COLUMNS, row))

    async def patch_order(self, order_id: str, fields: Dict[str, Any]) -> None:
        await self.apply_payment_update(order_id, fields)

    async def apply_payment_update(
        self,
        order_id: str,
        fields: Dict[str, Any],
        from_payment_statuses: Optional[Iterable[str]] = None,
    ) -> bool:
        """
        Single UPDATE; with from_payment_statuses the row is only written while its
        payment_status is still one of them. Returns whether a row changed.
        """
        unknown = set(fields) - PATCHABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot patch order columns: {sorted(unknown)}")
        updates = {k: v for k, v in fields.items() if v is not None}
        if not updates:
            return False

        assignments = ", ".join(f"{column}=?" for column in updates)
        sql = f"UPDATE orders SET {assignments}, updated_at=? WHERE order_id=?"
        params: list[Any] = [*updates.values(), _now(), order_id]
        if from_payment_statuses is not None:
            allowed = sorted(from_payment_statuses)
            sql += f" AND payment_status IN ({', '.join('?' for _ in allowed)})"
            params.extend(allowed)

        async with aiosqlite.connect(self.db_file) as db:
            cur = await db.execute(sql, params)
            await db.commit()
            return cur.rowcount > 0
