from typing import List

from fastapi import APIRouter

from menu_orders.models.order import STATUS_LABELS, OrderStatusEnum
from menu_orders.schemas.order import StatusInfo

router = APIRouter(tags=["orders"])


@router.get("/order-statuses", response_model=List[StatusInfo])
async def list_statuses():
    """
    Справочник статусов: подпись, допустимые следующие статусы и признак завершённости.
    """
    return [StatusInfo.for_status(status, STATUS_LABELS[status]) for status in OrderStatusEnum]
