"""
Webshop: 注文台帳 (Excel)

完了した注文を1注文1行で追記していくスプレッドシート。
管理画面向けに全件読み戻しもできる。

追記はワークブック全体を読み込み → 1行追加 → ファイル全体を書き直す。
そのためストアごとの asyncio.Lock で書き込みを直列化し、保存は一時ファイル
経由の os.replace で行う（書き込み失敗で台帳が壊れない）。
"""

import asyncio
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from xml.etree.ElementTree import ParseError
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from .errors import StorageUnavailable
from .models import LEDGER_FIELDS, LedgerRow

logger = logging.getLogger(__name__)

SHEET_NAME = "Rendelések"

# (ヘッダー, 列幅): LedgerRow のフィールド順と一致
COLUMNS: list[tuple[str, int]] = [
    ("Rendelés ID", 20),
    ("Dátum", 20),
    ("Név", 25),
    ("Email", 30),
    ("Telefon", 15),
    ("Szállítási mód", 20),
    ("FoxPost automata", 30),
    ("Cím", 40),
    ("Termékek", 50),
    ("Mennyiség", 12),
    ("Összeg (Ft)", 15),
    ("Fizetési mód", 20),
    ("Fizetés állapota", 20),
    ("Megjegyzés", 30),
]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF20B2AA")

# 壊れた XML は ElementTree.ParseError (lxml 使用時は XMLSyntaxError)、どちらも SyntaxError
_UNREADABLE = (
    InvalidFileException,
    BadZipFile,
    ParseError,
    SyntaxError,
    KeyError,
    ValueError,
    OSError,
)


class LedgerStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def append_order(self, row: LedgerRow) -> None:
        """
        台帳に1行追記する。

        台帳ファイルが無ければヘッダー付きで新規作成する。読めないファイルは
        退避してから新規作成する。保存に失敗した場合は StorageUnavailable。
        """
        async with self._lock:
            await asyncio.to_thread(self._append, row)
        logger.info("Order %s appended to ledger %s", row.order_id, self.path)

    async def read_all(self) -> list[LedgerRow]:
        """ヘッダー以降の全行を返す。ファイルが無い/読めない場合は空リスト。"""
        async with self._lock:
            try:
                return await asyncio.to_thread(self._read_rows)
            except _UNREADABLE:
                logger.exception("Failed to read ledger %s", self.path)
                return []

    async def contains(self, order_id: str) -> bool:
        """orderId が台帳に存在するか。読めない台帳は空として扱う（追記時に退避される）。"""
        rows = await self.read_all()
        return any(str(r.order_id) == order_id for r in rows)

    # ── ファイル I/O (ワーカースレッドで実行) ──────

    def _read_rows(self) -> list[LedgerRow]:
        if not self.path.exists():
            return []
        workbook = load_workbook(self.path, read_only=True)
        try:
            if SHEET_NAME not in workbook.sheetnames:
                return []
            sheet = workbook[SHEET_NAME]
            return [
                LedgerRow.from_cells(cells)
                for cells in sheet.iter_rows(
                    min_row=2, max_col=len(LEDGER_FIELDS), values_only=True
                )
                if any(c is not None for c in cells)
            ]
        finally:
            workbook.close()

    def _open_or_init(self) -> Workbook:
        if self.path.exists():
            try:
                workbook = load_workbook(self.path)
            except _UNREADABLE:
                aside = self.path.with_name(
                    f"{self.path.stem}.corrupt-{datetime.now():%Y%m%d%H%M%S}"
                    f"{self.path.suffix}"
                )
                logger.exception(
                    "Ledger %s is unreadable, moving it to %s", self.path, aside
                )
                os.replace(self.path, aside)
            else:
                if SHEET_NAME not in workbook.sheetnames:
                    _add_sheet(workbook)
                return workbook

        workbook = Workbook()
        workbook.remove(workbook.active)
        _add_sheet(workbook)
        logger.info("Initialized new ledger %s", self.path)
        return workbook

    def _append(self, row: LedgerRow) -> None:
        try:
            workbook = self._open_or_init()
            workbook[SHEET_NAME].append(row.cells())
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.stem}.", suffix=".xlsx"
            )
            os.close(fd)
            try:
                workbook.save(tmp)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageUnavailable(f"cannot write ledger {self.path}: {e}") from e


def _add_sheet(workbook: Workbook) -> None:
    sheet = workbook.create_sheet(SHEET_NAME)
    sheet.append([header for header, _ in COLUMNS])
    for index, (_, width) in enumerate(COLUMNS, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width
    for cell in sheet[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
