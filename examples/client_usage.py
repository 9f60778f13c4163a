#!/usr/bin/env python3
"""
Yunbi client usage example.

Fetches public market data, then (when YUNBI_ACCESS_KEY / YUNBI_SECRET_KEY are
set) the signed member profile after an explicit clock sync.
"""

import asyncio
import os

from yunbi_client import YunbiAPIClient, YunbiAPIError


async def main(market: str = 'ethcny') -> None:
    access_key = os.getenv('YUNBI_ACCESS_KEY', '')
    secret_key = os.getenv('YUNBI_SECRET_KEY', '')

    async with YunbiAPIClient(access_key, secret_key, sync_on_start=False) as client:
        print(f"Clock offset: {client.clock.current_offset_millis()}ms")

        ticker = await client.get_ticker(market)
        print(f"{market} ticker: {ticker}")

        order_book = await client.get_order_book(market, limit=5)
        print(f"Top asks: {order_book.get('asks', [])[:5]}")

        if not (access_key and secret_key):
            print("No credentials set, skipping private endpoints")
            return

        try:
            member = await client.get_member()
            print(f"Member: {member.get('sn')}")
        except YunbiAPIError as e:
            print(f"Private call rejected: {e.error_code}")


if __name__ == '__main__':
    asyncio.run(main())
