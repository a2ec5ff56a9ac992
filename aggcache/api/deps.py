from fastapi import Header, HTTPException, Query, Request, status
from typing import List, Optional

from aggcache.core.container import ServiceContainer
from aggcache.models.aggregation import FilterOptions, Product, Timeframe


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Aggregation service is not initialized",
        )
    return container


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    # Authentication happens upstream; the gateway forwards the user id
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header"
        )
    return x_user_id.strip()


def get_filter_options(
    timeframe: Timeframe = Query(default=Timeframe.ALL),
    product: Product = Query(default=Product.ALL),
    topics: Optional[List[str]] = Query(default=None),
    channels: Optional[List[str]] = Query(default=None),
) -> FilterOptions:
    return FilterOptions(timeframe=timeframe, product=product, topics=topics, channels=channels)
