"""Subscriptions router.

Maps repository outcomes to HTTP: NoSuchRowError -> 404, RepositoryError -> 500
with a generic message (the cause is logged, not returned).
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status

from subs_api.deps import get_repository, get_request_id
from subs_api.errors import NoSuchRowError, RepositoryError
from subs_api.models import ListOpts, RangeOpts, SortColumn, SubFilter, Subscription, parse_month
from subs_api.repository import SubsRepository
from subs_api.schemas.subscriptions import AddResponse, ErrorResponse, MessageResponse, SumResponse

router = APIRouter(
    prefix="/subs",
    tags=["subs"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "internal server error"


def _client(request: Request) -> str:
    return request.client.host if request.client else "-"


def _not_found(request: Request, action: str) -> HTTPException:
    logger.error(f"{action} request with unexisted id req_id={get_request_id(request)} from={_client(request)}")
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="no such row")


def _internal(request: Request, action: str, exc: Exception) -> HTTPException:
    logger.error(f"error {action}: {exc} req_id={get_request_id(request)} from={_client(request)}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR)


def _filter_from_query(name: Optional[str], uid: Optional[UUID]) -> Optional[SubFilter]:
    """No filter params -> None (no predicate at all)."""
    if not name and uid is None:
        return None
    return SubFilter(name=name or None, uid=uid)


@router.post("/add", response_model=AddResponse)
def add_subscription(
    sub: Subscription,
    request: Request,
    repo: SubsRepository = Depends(get_repository),
):
    """Register a new subscription."""
    try:
        new_id = repo.add_sub(sub)
    except RepositoryError as e:
        raise _internal(request, "adding subscription", e)
    logger.info(f"successfully added new subscription id={new_id} req_id={get_request_id(request)}")
    return AddResponse(cod=status.HTTP_200_OK, msg="sub added", id=new_id)


@router.get("/list", response_model=List[Subscription], response_model_exclude_none=True)
def list_subscriptions(
    request: Request,
    name: Optional[str] = Query(None, description="Sub's service name"),
    uid: Optional[UUID] = Query(None, description="User ID"),
    limit: int = Query(0, ge=0, description="Returned rows limit, 0 for no limit"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
    order: Optional[SortColumn] = Query(None, description="Field to sort by (ascending)"),
    repo: SubsRepository = Depends(get_repository),
):
    """List subscriptions with optional filters."""
    opts = ListOpts(limit=limit, offset=offset, filter=_filter_from_query(name, uid), order=order)
    try:
        subs = repo.list_subs(opts)
    except RepositoryError as e:
        raise _internal(request, "listing subscriptions", e)
    logger.info(f"successfully listed subscriptions count={len(subs)} req_id={get_request_id(request)}")
    return subs


@router.get("/sum", response_model=SumResponse)
def get_price_sum(
    request: Request,
    name: Optional[str] = Query(None, description="Sub's service name"),
    uid: Optional[UUID] = Query(None, description="User ID"),
    start: Optional[str] = Query(None, description="Start period, MM-YYYY", examples=["01-2025"]),
    end: Optional[str] = Query(None, description="End period, MM-YYYY", examples=["03-2026"]),
    repo: SubsRepository = Depends(get_repository),
):
    """Summary price of matching subscriptions.

    The period applies only when both start and end are given.
    """
    try:
        period = RangeOpts(
            start=parse_month(start) if start else None,
            end=parse_month(end) if end else None,
        )
    except ValueError as e:
        logger.error(f"sum request with invalid period dates: {e} req_id={get_request_id(request)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid request")
    if period.is_bounded and period.start > period.end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must be <= end")

    try:
        total = repo.price_sum(_filter_from_query(name, uid), period if period.is_bounded else None)
    except NoSuchRowError:
        raise _not_found(request, "sum")
    except RepositoryError as e:
        raise _internal(request, "getting subs sum", e)
    logger.info(f"successfully provided subscriptions' price sum req_id={get_request_id(request)}")
    return SumResponse(sum=total)


@router.get("/{sub_id}", response_model=Subscription, response_model_exclude_none=True)
def get_subscription(
    request: Request,
    sub_id: int = Path(..., ge=1, description="Subscription ID"),
    repo: SubsRepository = Depends(get_repository),
):
    try:
        sub = repo.get_sub(sub_id)
    except NoSuchRowError:
        raise _not_found(request, "get sub")
    except RepositoryError as e:
        raise _internal(request, "getting subscription", e)
    logger.info(f"successfully provided subscription info id={sub_id} req_id={get_request_id(request)}")
    return sub


@router.put("/{sub_id}", response_model=MessageResponse)
def update_subscription(
    sub: Subscription,
    request: Request,
    sub_id: int = Path(..., ge=1, description="Subscription ID"),
    repo: SubsRepository = Depends(get_repository),
):
    """Replace subscription data for the id in path."""
    try:
        repo.update_sub(sub_id, sub)
    except NoSuchRowError:
        raise _not_found(request, "update sub")
    except RepositoryError as e:
        raise _internal(request, "updating subscription", e)
    logger.info(f"subscription successfully updated id={sub_id} req_id={get_request_id(request)}")
    return MessageResponse(cod=status.HTTP_200_OK, msg="subscription updated")


@router.delete("/{sub_id}", response_model=MessageResponse)
def delete_subscription(
    request: Request,
    sub_id: int = Path(..., ge=1, description="Subscription ID"),
    repo: SubsRepository = Depends(get_repository),
):
    try:
        repo.delete_sub(sub_id)
    except NoSuchRowError:
        raise _not_found(request, "delete sub")
    except RepositoryError as e:
        raise _internal(request, "deleting subscription", e)
    logger.info(f"subscription successfully deleted id={sub_id} req_id={get_request_id(request)}")
    return MessageResponse(cod=status.HTTP_200_OK, msg="subscription deleted")
