import asyncio
import json
import sys

import websockets

PHONE = "901234567"
BASE_URL = "ws://127.0.0.1:4001"


async def main(token: str) -> None:
    uri = f"{BASE_URL}/ws/orders/feed"
    async with websockets.connect(uri) as websocket:
        await websocket.send(json.dumps({"token": token}))
        print(f"Подключено к /ws/orders/feed как {PHONE}, ждем снимки ленты...")
        while True:
            try:
                payload = await asyncio.wait_for(websocket.recv(), timeout=120)
            except asyncio.TimeoutError:
                print("Таймаут ожидания снимка")
                return
            message = json.loads(payload)
            data = message.get("data") or {}
            ids = [o.get("id") for o in data.get("orders", [])]
            print(f"[{message.get('type')}] v{data.get('version')} заказы: {ids}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: ws_feed_listener.py <access_token>")
        sys.exit(1)
    asyncio.run(main(sys.argv[1]))
