"""
Catalog Service — Order Gateway client

Thin wrapper over the order service's `POST /api/orders`. The caller owns
the `httpx.AsyncClient` (and therefore its timeout); transport failures are
left to propagate as `httpx.HTTPError`.
"""

from dataclasses import dataclass

import httpx


@dataclass
class GatewayResponse:
    status: int
    body: dict

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class OrderGateway:
    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def create_order(self, payload: dict) -> GatewayResponse:
        resp = await self.client.post(f"{self.base_url}/api/orders", json=payload)
        try:
            body = resp.json()
        except ValueError:
            body = {"error": resp.text}
        if not isinstance(body, dict):
            body = {"data": body}
        return GatewayResponse(status=resp.status_code, body=body)
