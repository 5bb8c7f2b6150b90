"""Token price lookup router."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..services.price_cache import PriceCache, get_price_cache

logger = logging.getLogger(__name__)

router = APIRouter()


class TokenPriceResponse(BaseModel):
    """Cached price of a token."""
    price: float
    last_updated: str


class ErrorResponse(BaseModel):
    """Lookup error."""
    error: str


@router.get(
    "/{network_name}/{token_address}",
    response_model=TokenPriceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_token_price(
    network_name: str,
    token_address: str,
    cache: PriceCache = Depends(get_price_cache),
):
    """Get the cached price of a token on a network."""
    logger.info(f"Request: GET /v1/{network_name}/{token_address}")

    if not cache.has_network(network_name):
        return JSONResponse(
            status_code=404,
            content={"error": f"Network {network_name} not found"},
        )

    entry = cache.get(network_name, token_address)
    if entry is None:
        return JSONResponse(
            status_code=404,
            content={"error": f"Token {token_address} not found on network {network_name}"},
        )

    return TokenPriceResponse(
        price=entry.price,
        last_updated=entry.last_updated.isoformat(),
    )
