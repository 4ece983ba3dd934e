"""
Webshop: カタログストア

商品カタログは JSON 配列ファイル1つで管理する。部分更新の手段はなく、
変更は常に「全件読み込み → メモリ上で変更 → 全件書き戻し」で行う。

load / save は呼び出し側に例外を投げない（ログを出して縮退する）。
注文確定パスは reserve / restore を使い、失敗を StorageUnavailable として
受け取る。壊れたカタログを空配列で上書きしないため。

ファイルへのアクセスはストアごとの asyncio.Lock で直列化し、
書き込みは一時ファイル + os.replace で原子的に行う。
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import TypeAdapter

from .errors import InsufficientStock, StorageUnavailable
from .models import OrderItem, Product

logger = logging.getLogger(__name__)

_products = TypeAdapter(list[Product])


class CatalogStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    # ── 縮退する公開 API ─────────────────────────

    async def load(self) -> list[Product]:
        """カタログ全件を返す。ファイルが無い/壊れている場合は空リスト。"""
        async with self._lock:
            try:
                return await asyncio.to_thread(self._read)
            except StorageUnavailable:
                logger.exception("Failed to load catalog from %s", self.path)
                return []

    async def save(self, products: list[Product]) -> None:
        """カタログ全体を上書きする。I/O エラーはログのみ。"""
        async with self._lock:
            try:
                await asyncio.to_thread(self._write, products)
            except StorageUnavailable:
                logger.exception("Failed to save catalog to %s", self.path)

    async def get(self, product_id: int) -> Product | None:
        for product in await self.load():
            if product.id == product_id:
                return product
        return None

    # ── 注文確定パス用 (厳格) ─────────────────────

    async def reserve(self, items: list[OrderItem]) -> dict[int, Product]:
        """
        在庫引き当て

        1. カタログを読み込む
        2. 商品が見つかった明細の数量を在庫から引く
           （カタログに無い商品 ID は何もせずスキップ）
        3. 在庫がマイナスになる明細があれば何も書かずに InsufficientStock
        4. カタログ全体を書き戻す

        引き当て後の商品を ID ごとに返す。
        """
        async with self._lock:
            products = await asyncio.to_thread(self._read_strict)
            by_id = {p.id: p for p in products}

            requested: dict[int, int] = {}
            for item in items:
                if item.product_id not in by_id:
                    logger.warning(
                        "Unknown product id %s in order, skipping stock update",
                        item.product_id,
                    )
                    continue
                requested[item.product_id] = (
                    requested.get(item.product_id, 0) + item.quantity
                )

            for product_id, quantity in requested.items():
                available = by_id[product_id].quantity
                if available < quantity:
                    raise InsufficientStock(product_id, quantity, available)

            for product_id, quantity in requested.items():
                by_id[product_id].quantity -= quantity

            await asyncio.to_thread(self._write, products)
            return {pid: by_id[pid] for pid in requested}

    async def restore(self, items: list[OrderItem]) -> None:
        """引き当てた在庫を戻す（補償トランザクション）"""
        async with self._lock:
            products = await asyncio.to_thread(self._read_strict)
            by_id = {p.id: p for p in products}
            for item in items:
                if item.product_id in by_id:
                    by_id[item.product_id].quantity += item.quantity
            await asyncio.to_thread(self._write, products)

    # ── ファイル I/O (ワーカースレッドで実行) ──────

    def _read(self) -> list[Product]:
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise StorageUnavailable(f"cannot read {self.path}: {e}") from e
        try:
            return _products.validate_json(raw)
        except ValueError as e:
            raise StorageUnavailable(f"malformed catalog {self.path}: {e}") from e

    def _read_strict(self) -> list[Product]:
        # カタログがまだ無いのは空カタログとして扱う。壊れている場合は中断。
        if not self.path.exists():
            return []
        return self._read()

    def _write(self, products: list[Product]) -> None:
        data = json.dumps(
            _products.dump_python(products, mode="json"),
            indent=2,
            ensure_ascii=False,
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(data)
                    f.write("\n")
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageUnavailable(f"cannot write {self.path}: {e}") from e
