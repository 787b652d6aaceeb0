"""
Dev helper: create or overwrite a shop document (and optionally its seller info)
directly in the document store.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys

from panel.core.db import SessionLocal, engine
from panel.stores.documents import SHOPS, SqlDocumentStore, seller_info_collection


async def seed(shop_id: str, shop: dict, seller_info: dict | None) -> None:
    async with SessionLocal() as session:
        store = SqlDocumentStore(session)
        await store.set(SHOPS, shop_id, shop, actor="internal")
        if seller_info:
            await store.set(seller_info_collection(shop_id), "info", seller_info, actor="internal")
    await engine.dispose()


def main() -> int:
    p = argparse.ArgumentParser(description="Seed a shop document.")
    p.add_argument("--shop-id", required=True)
    p.add_argument("--name", required=True)
    p.add_argument("--owner-id", required=True, help="users.id of the shop owner")
    p.add_argument("--editor", action="append", default=[], help="user id; repeatable")
    p.add_argument("--seller-info", help="path to a JSON file with phone/region/address/iban fields")
    args = p.parse_args()

    seller_info = None
    if args.seller_info:
        try:
            with open(args.seller_info, encoding="utf-8") as fh:
                seller_info = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            print(f"Cannot read seller info: {e}", file=sys.stderr)
            return 2

    shop = {"name": args.name, "ownerId": args.owner_id, "editors": args.editor, "coOwners": [], "viewers": []}
    asyncio.run(seed(args.shop_id, shop, seller_info))
    print(f"seeded shop {args.shop_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
