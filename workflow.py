"""
Farmer Request Workflow

Farmers never edit the catalog themselves. Each change they want becomes a
FarmerRequest that waits in `pending` until an admin resolves it:

    pending -> approved   (confirmed by the admin, may update the product)
    pending -> rejected   (needs a non-empty reason, catalog untouched)

Both outcomes are terminal.
"""
import logging
import re
from typing import List, Optional

from schemas import ActionResult, Farmer, FarmerRequest, Product, RequestedChange
from validation import parse_amount

logger = logging.getLogger(__name__)

PRICE_RE = re.compile(r"\$(\d+\.?\d*)")


def parse_price_change(text: str) -> Optional[float]:
    """
    First `$<number>` in a request that mentions "price" (lowercase), if any.

    Raises ValueError when the amount is there but not a usable price.
    """
    if not text or "price" not in text:
        return None
    match = PRICE_RE.search(text)
    if match is None:
        return None
    amount = parse_amount(match.group(1))
    if amount is None:
        raise ValueError(f"Invalid price in request: ${match.group(1)[:20]}")
    return amount


class RequestWorkflow:
    """Submission, approval and rejection of farmer requests against a store."""

    def __init__(self, store):
        self.store = store

    @property
    def requests(self) -> List[FarmerRequest]:
        return self.store.farmer_requests

    def submit(
        self,
        farmer: Farmer,
        product: str,
        request: str,
        product_id: Optional[int] = None,
        change: Optional[RequestedChange] = None,
    ) -> ActionResult:
        if not product or not request or not request.strip():
            return ActionResult(success=False, message="Product and request description are required")

        farmer_request = FarmerRequest(
            id=self.store.next_request_id(),
            farmer=farmer.name,
            farmer_email=farmer.email,
            farm=farmer.farm_name,
            product=product,
            product_id=product_id,
            request=request.strip(),
            change=change,
        )
        self.requests.append(farmer_request)
        logger.info(f"Farmer {farmer.email} submitted request {farmer_request.id} for {product}")
        return ActionResult(
            success=True,
            message="Request submitted for admin approval",
            data=farmer_request,
        )

    def pending(self) -> List[FarmerRequest]:
        return [r for r in self.requests if r.status == "pending"]

    def pending_count(self) -> int:
        return len(self.pending())

    def find_product(self, farmer_request: FarmerRequest) -> Optional[Product]:
        """
        Resolve the product a request refers to.

        An explicit product_id wins; when it is absent or no longer in the
        catalog, fall back to the first product whose name equals the
        request's `product` text.
        """
        catalog = self.store.catalog
        if farmer_request.product_id is not None:
            product = catalog.find(farmer_request.product_id)
            if product is not None:
                return product
        return catalog.find_by_name(farmer_request.product)

    def approve(self, request_id: int, confirmed: bool = False, comment: str = "") -> ActionResult:
        farmer_request = self.store.find_request(request_id)
        if farmer_request is None:
            return ActionResult(success=False, message="Request not found")
        if farmer_request.status != "pending":
            return ActionResult(success=False, message=f"Request already {farmer_request.status}")
        if not confirmed:
            return ActionResult(success=False, message="Approval was not confirmed")

        change = farmer_request.change
        if change is not None and change.kind == "price":
            new_price = parse_amount(change.value)
            if new_price is None:
                logger.warning(f"Request {request_id} carries an invalid price: {change.value!r}")
                return ActionResult(success=False, message=f"Invalid price value: {change.value!r}")
        elif change is None:
            try:
                new_price = parse_price_change(farmer_request.request)
            except ValueError as e:
                logger.warning(f"Request {request_id}: {e}")
                return ActionResult(success=False, message=str(e))
        else:
            # quantity/certification/other are recorded, not applied
            new_price = None

        farmer_request.status = "approved"
        if comment:
            farmer_request.comment = comment

        product = self.find_product(farmer_request)
        updated = None
        if product is not None and new_price is not None:
            updated = self.store.catalog.update(product.product_id, {"price": new_price})
            logger.info(f"Product {product.product_id} price set to {new_price} by request {request_id}")

        logger.info(f"Request {request_id} from {farmer_request.farmer} approved")
        return ActionResult(
            success=True,
            message=f"Request approved! {farmer_request.farmer} has been notified.",
            data=updated,
        )

    def reject(self, request_id: int, reason: Optional[str]) -> ActionResult:
        farmer_request = self.store.find_request(request_id)
        if farmer_request is None:
            return ActionResult(success=False, message="Request not found")
        if farmer_request.status != "pending":
            return ActionResult(success=False, message=f"Request already {farmer_request.status}")
        if not reason or not reason.strip():
            logger.warning(f"Rejection of request {request_id} refused: no reason given")
            return ActionResult(success=False, message="A rejection reason is required")

        farmer_request.status = "rejected"
        farmer_request.rejection_reason = reason
        logger.info(f"Request {request_id} from {farmer_request.farmer} rejected: {reason}")
        return ActionResult(
            success=True,
            message=f"Request rejected! {farmer_request.farmer} has been notified.",
            data=farmer_request,
        )
