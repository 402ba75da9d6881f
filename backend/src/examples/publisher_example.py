import asyncio
import uuid
import httpx  # to install: pip install httpx

async def main():
    base = "http://localhost:3001"
    async with httpx.AsyncClient(base_url=base) as client:
        # publish a test message to topic 'orders' through the console
        body = {
            "topic": "orders",
            "type": "order.created",
            "attributes": {"source": "publisher_example"},
            "data": {"order_id": "ORD-1", "amount": 9.99, "currency": "USD", "ref": str(uuid.uuid4())},
        }
        print("Client Message: ", body)
        resp = await client.post("/api/publish", json=body)
        print("Server:", resp.status_code, resp.json())

if __name__ == "__main__":
    asyncio.run(main())
