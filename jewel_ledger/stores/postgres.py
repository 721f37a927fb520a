"""
PostgreSQL ledger store.

Provides connection management, row locking for the single-writer rule,
and retries for transient connection failures. Retries wrap reads and
connection setup only; a failed write inside a locked unit is reported,
not replayed.
"""
from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from loguru import logger

from ..config import JewelLedgerConfig
from ..exceptions import LedgerStoreError, VoucherNotFoundError
from ..models import get_schema_sql
from ..types import LedgerBalances, Voucher, to_record


def get_connection(config: Optional[JewelLedgerConfig] = None):
    """
    Create a database connection.

    Returns a psycopg connection with dict rows; statements autocommit
    unless run inside ``conn.transaction()``.
    """
    config = config or JewelLedgerConfig.from_env()
    return psycopg.connect(config.db_url, autocommit=True, row_factory=dict_row)


def _voucher_key(ledger_id: str, voucher_id: str) -> int:
    # Voucher ids are bigserial keys
    try:
        return int(voucher_id)
    except (TypeError, ValueError):
        raise VoucherNotFoundError(f"Voucher {voucher_id} not found on ledger {ledger_id}") from None


class PostgresLedgerStore:
    """
    Ledger store backed by PostgreSQL.

    Usage:
        with PostgresLedgerStore() as store:
            store.initialize_schema()
            with store.lock("L1"):
                balances = store.get_balances("L1")
    """

    def __init__(self, config: Optional[JewelLedgerConfig] = None):
        self.config = config or JewelLedgerConfig.from_env()
        self.schema = self.config.db_schema
        self._conn = None

    def _retrying(self) -> Retrying:
        return Retrying(
            wait=wait_exponential(multiplier=1, min=1, max=10),
            stop=stop_after_attempt(self.config.retry_attempts),
            retry=retry_if_exception_type(psycopg.OperationalError),
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                f"Retrying ledger store call (attempt {retry_state.attempt_number})..."
            ),
        )

    @property
    def conn(self):
        """Get or create database connection."""
        if self._conn is None or self._conn.closed:
            try:
                for attempt in self._retrying():
                    with attempt:
                        self._conn = get_connection(self.config)
            except psycopg.Error as e:
                logger.error(f"Failed to connect to ledger database: {e}")
                raise LedgerStoreError(f"Cannot connect to ledger database: {e}") from e
        return self._conn

    def close(self):
        """Close database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def initialize_schema(self):
        """Create schema and tables if they don't exist."""
        with self.conn.cursor() as cur:
            cur.execute(get_schema_sql(self.schema))
        logger.info(f"Ledger schema {self.schema} initialized")

    def _read(self, sql: str, params: tuple) -> list[dict]:
        try:
            for attempt in self._retrying():
                with attempt:
                    with self.conn.cursor() as cur:
                        cur.execute(sql, params)
                        return cur.fetchall()
        except psycopg.Error as e:
            logger.error(f"Ledger store read failed: {e}")
            raise LedgerStoreError(f"Ledger store read failed: {e}") from e
        return []

    @contextmanager
    def lock(self, ledger_id: str) -> Iterator[None]:
        """Open a transaction holding the ledger row lock until exit."""
        try:
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    cur.execute(
                        f"SELECT ledger_id FROM {self.schema}.ledger WHERE ledger_id = %s FOR UPDATE",
                        (ledger_id,),
                    )
                yield
        except psycopg.Error as e:
            logger.error(f"Ledger transaction for {ledger_id} failed: {e}")
            raise LedgerStoreError(f"Ledger transaction failed: {e}") from e

    def get_balances(self, ledger_id: str) -> Optional[LedgerBalances]:
        rows = self._read(
            f"""
            SELECT cash_balance, credit_balance, gold_fine_weight, silver_fine_weight
            FROM {self.schema}.ledger
            WHERE ledger_id = %s
            """,
            (ledger_id,),
        )
        if not rows:
            return None
        row = rows[0]
        return LedgerBalances(
            cash=row["cash_balance"],
            credit=row["credit_balance"],
            gold_fine=row["gold_fine_weight"],
            silver_fine=row["silver_fine_weight"],
        )

    def get_opening_balances(self, ledger_id: str) -> Optional[LedgerBalances]:
        rows = self._read(
            f"""
            SELECT opening_amount, opening_gold_fine, opening_silver_fine
            FROM {self.schema}.ledger
            WHERE ledger_id = %s
            """,
            (ledger_id,),
        )
        if not rows:
            return None
        row = rows[0]
        return LedgerBalances(
            cash=row["opening_amount"],
            gold_fine=row["opening_gold_fine"],
            silver_fine=row["opening_silver_fine"],
        )

    def list_vouchers(self, ledger_id: str) -> list[Voucher]:
        rows = self._read(
            f"""
            SELECT voucher_id, record
            FROM {self.schema}.voucher
            WHERE ledger_id = %s
            ORDER BY voucher_date NULLS FIRST, voucher_id
            """,
            (ledger_id,),
        )
        vouchers = []
        for row in rows:
            voucher = Voucher.model_validate(row["record"])
            vouchers.append(voucher.model_copy(update={"voucher_id": str(row["voucher_id"])}))
        return vouchers

    def get_voucher(self, ledger_id: str, voucher_id: str) -> Optional[Voucher]:
        try:
            key = _voucher_key(ledger_id, voucher_id)
        except VoucherNotFoundError:
            return None
        rows = self._read(
            f"""
            SELECT voucher_id, record
            FROM {self.schema}.voucher
            WHERE ledger_id = %s AND voucher_id = %s
            """,
            (ledger_id, key),
        )
        if not rows:
            return None
        voucher = Voucher.model_validate(rows[0]["record"])
        return voucher.model_copy(update={"voucher_id": str(rows[0]["voucher_id"])})

    def _write_balances(self, cur, ledger_id: str, balances: LedgerBalances):
        cur.execute(
            f"""
            UPDATE {self.schema}.ledger
            SET cash_balance = %s,
                credit_balance = %s,
                gold_fine_weight = %s,
                silver_fine_weight = %s,
                updated_at = NOW()
            WHERE ledger_id = %s
            """,
            (balances.cash, balances.credit, balances.gold_fine, balances.silver_fine, ledger_id),
        )
        if cur.rowcount == 0:
            raise LedgerStoreError(f"Ledger not found while updating balances: {ledger_id}")

    def save_voucher(self, ledger_id: str, voucher: Voucher, new_balances: LedgerBalances) -> str:
        """Insert the voucher and update live balances in one transaction."""
        record = to_record(voucher.model_copy(update={"ledger_id": ledger_id}))
        try:
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    cur.execute(
                        f"""
                        INSERT INTO {self.schema}.voucher
                            (ledger_id, voucher_number, voucher_date, payment_type, invoice_type, status, record)
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        RETURNING voucher_id
                        """,
                        (
                            ledger_id,
                            voucher.voucher_number,
                            voucher.voucher_date,
                            voucher.payment_type.value,
                            voucher.invoice_type.value,
                            voucher.status.value,
                            Jsonb(record),
                        ),
                    )
                    voucher_id = str(cur.fetchone()["voucher_id"])
                    self._write_balances(cur, ledger_id, new_balances)
        except psycopg.Error as e:
            logger.error(f"Failed to save voucher for ledger {ledger_id}: {e}")
            raise LedgerStoreError(f"Failed to save voucher: {e}") from e
        return voucher_id

    def replace_voucher(
        self, ledger_id: str, voucher_id: str, voucher: Voucher, new_balances: LedgerBalances
    ) -> None:
        """Overwrite a saved voucher and update live balances in one transaction."""
        record = to_record(voucher.model_copy(update={"voucher_id": None, "ledger_id": ledger_id}))
        try:
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    cur.execute(
                        f"""
                        UPDATE {self.schema}.voucher
                        SET voucher_number = %s,
                            voucher_date = %s,
                            payment_type = %s,
                            invoice_type = %s,
                            status = %s,
                            record = %s
                        WHERE ledger_id = %s AND voucher_id = %s
                        """,
                        (
                            voucher.voucher_number,
                            voucher.voucher_date,
                            voucher.payment_type.value,
                            voucher.invoice_type.value,
                            voucher.status.value,
                            Jsonb(record),
                            ledger_id,
                            _voucher_key(ledger_id, voucher_id),
                        ),
                    )
                    if cur.rowcount == 0:
                        raise VoucherNotFoundError(f"Voucher {voucher_id} not found on ledger {ledger_id}")
                    self._write_balances(cur, ledger_id, new_balances)
        except psycopg.Error as e:
            logger.error(f"Failed to update voucher {voucher_id} for ledger {ledger_id}: {e}")
            raise LedgerStoreError(f"Failed to update voucher: {e}") from e

    def delete_voucher(self, ledger_id: str, voucher_id: str, new_balances: LedgerBalances) -> None:
        """Delete a saved voucher and update live balances in one transaction."""
        try:
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    cur.execute(
                        f"DELETE FROM {self.schema}.voucher WHERE ledger_id = %s AND voucher_id = %s",
                        (ledger_id, _voucher_key(ledger_id, voucher_id)),
                    )
                    if cur.rowcount == 0:
                        raise VoucherNotFoundError(f"Voucher {voucher_id} not found on ledger {ledger_id}")
                    self._write_balances(cur, ledger_id, new_balances)
        except psycopg.Error as e:
            logger.error(f"Failed to delete voucher {voucher_id} for ledger {ledger_id}: {e}")
            raise LedgerStoreError(f"Failed to delete voucher: {e}") from e

    def set_balances(self, ledger_id: str, balances: LedgerBalances) -> None:
        try:
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    self._write_balances(cur, ledger_id, balances)
        except psycopg.Error as e:
            logger.error(f"Failed to update balances for ledger {ledger_id}: {e}")
            raise LedgerStoreError(f"Failed to update balances: {e}") from e
