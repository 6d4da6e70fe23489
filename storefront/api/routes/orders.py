from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.db.session import get_db
from storefront.services.admin import orders

router = APIRouter(prefix="/api/orders", tags=["Orders"], dependencies=[Depends(require_admin)])

_FAILURE_STATUS = {
    orders.INVALID_ORDER_ID: 400,
    orders.ORDER_NOT_FOUND: 404,
}


@router.delete("/{order_id}", summary="Delete an order")
def delete_order(order_id: str, db: Session = Depends(get_db)):
    """400 for a malformed id, 404 for an unknown order, 500 when the delete fails."""
    result = orders.delete_order(db, order_id)
    status_code = 200 if result["success"] else _FAILURE_STATUS.get(result["message"], 500)
    return JSONResponse(status_code=status_code, content=result)
