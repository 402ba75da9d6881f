import asyncio
import json
import httpx

async def main():
    base = "http://localhost:3001"
    seen = set()
    async with httpx.AsyncClient(base_url=base) as client:
        print("Tailing orders.ui... (press Ctrl+C to exit)")
        try:
            while True:
                resp = await client.get("/api/messages", params={"subscription": "orders.ui", "limit": 50})
                # newest first; print oldest unseen first
                for item in reversed(resp.json()["items"]):
                    key = (item["id"], item["receivedAt"])
                    if key in seen:
                        continue
                    seen.add(key)
                    print("Received:", json.dumps(item["data"]))
                await asyncio.sleep(2)
        except KeyboardInterrupt:
            print("Stopped.")

if __name__ == "__main__":
    asyncio.run(main())
