from __future__ import annotations

import os
from decimal import Decimal
from typing import Any, Dict, List, Union

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field

from shopcart.cart import Cart
from shopcart.config import settings
from shopcart.constants import PRICE_WITHOUT_TAX
from shopcart.db.sqlite import CartStore, SqliteCartStore
from shopcart.errors import CartError, NotFoundError, PriceRuleError
from shopcart.events import LoggingNotifier
from shopcart.models import Discount, LineItem, PriceRule, TaxRule
from shopcart.services.receipt_pdf import generate_receipt_pdf

app = FastAPI(title="Shopcart")

store = SqliteCartStore()
notifier = LoggingNotifier()


def get_store() -> CartStore:
    return store


@app.on_event("startup")
def _startup() -> None:
    store.init_db()


@app.exception_handler(CartError)
def _cart_error(request: Request, exc: CartError) -> JSONResponse:
    if isinstance(exc, NotFoundError):
        status = 404
    elif isinstance(exc, PriceRuleError):
        status = 409
    else:
        status = 400
    return JSONResponse({"error": str(exc)}, status_code=status)


# ---------------- payloads ----------------

class TaxRuleIn(BaseModel):
    id: str
    name: str = ""
    rate: Decimal = Decimal("0")


class ItemIn(BaseModel):
    id: str
    name: str
    quantity: Decimal
    price: Decimal
    tax_rules: List[TaxRuleIn] = Field(default_factory=list)
    price_type: int = PRICE_WITHOUT_TAX
    options: Dict[str, Any] = Field(default_factory=dict)

    def to_item(self) -> LineItem:
        return LineItem.create(
            id=self.id,
            name=self.name,
            quantity=self.quantity,
            price=self.price,
            tax_rules=[TaxRule(id=t.id, name=t.name, rate=t.rate) for t in self.tax_rules],
            price_type=self.price_type,
            options=self.options,
        )


class QuantityIn(BaseModel):
    quantity: Decimal


class DiscountIn(BaseModel):
    percentage: Decimal = Decimal("0")
    fixed: Decimal = Decimal("0")
    apply_shipping_amount: bool = False


class PriceRuleIn(BaseModel):
    id: str
    discount_type: str
    discount: DiscountIn = Field(default_factory=DiscountIn)
    name: str = ""
    combinable: bool = True
    free_shipping: bool = False

    def to_rule(self) -> PriceRule:
        return PriceRule(
            id=self.id,
            discount_type=self.discount_type,
            discount=Discount(
                percentage=self.discount.percentage,
                fixed=self.discount.fixed,
                apply_shipping_amount=self.discount.apply_shipping_amount,
            ),
            name=self.name,
            combinable=self.combinable,
            free_shipping=self.free_shipping,
        )


class ShippingIn(BaseModel):
    has_shipping: bool
    amount: Decimal = Decimal("0")


# ---------------- helpers ----------------

def _open(instance: str, cart_store: CartStore) -> Cart:
    return Cart.open(instance, cart_store, notifier=notifier)


def _commit(cart: Cart) -> None:
    # a cart emptied by remove() is already gone from the store
    if not cart.destroyed:
        cart.save()


def _summary(cart: Cart) -> Dict[str, Any]:
    items = []
    for it in cart.items:
        row = it.to_dict()
        row.update(
            subtotal=str(it.subtotal),
            subtotal_with_discounts=str(it.subtotal_with_discounts),
            tax_amount=str(it.tax_amount),
            total=str(it.total),
        )
        items.append(row)

    return {
        "instance": cart.instance,
        "count": cart.count(),
        "quantity": str(cart.quantity),
        "items": items,
        "price_rules": [r.to_dict() for r in cart.price_rules],
        "taxes": [t.to_dict() for t in cart.tax_summary().values()],
        "subtotal": str(cart.subtotal),
        "tax_amount": str(cart.tax_amount),
        "discount_amount": str(cart.discount_amount),
        "total": str(cart.total),
        "has_shipping": cart.has_shipping,
        "has_free_shipping": cart.has_free_shipping,
        "shipping": str(cart.shipping_total),
        "formatted": {
            "subtotal": cart.get_subtotal(),
            "tax_amount": cart.get_tax_amount(),
            "discount_amount": cart.get_discount_amount(),
            "total": cart.get_total(),
        },
    }


# ---------------- cart ----------------

@app.get("/carts/{instance}")
def cart_show(instance: str, cart_store: CartStore = Depends(get_store)):
    return _summary(_open(instance, cart_store))


@app.delete("/carts/{instance}")
def cart_destroy(instance: str, cart_store: CartStore = Depends(get_store)):
    cart = _open(instance, cart_store)
    cart.destroy()
    return _summary(cart)


# ---------------- items ----------------

@app.post("/carts/{instance}/items")
def items_add(
    instance: str,
    payload: Union[ItemIn, List[ItemIn]],
    cart_store: CartStore = Depends(get_store),
):
    cart = _open(instance, cart_store)
    if isinstance(payload, list):
        cart.add([p.to_item() for p in payload])
    else:
        cart.add(payload.to_item())
    _commit(cart)
    return _summary(cart)


@app.put("/carts/{instance}/items/{row_id}")
def items_set_quantity(
    instance: str,
    row_id: str,
    payload: QuantityIn,
    cart_store: CartStore = Depends(get_store),
):
    cart = _open(instance, cart_store)
    cart.set_quantity(row_id, payload.quantity)
    _commit(cart)
    return _summary(cart)


@app.delete("/carts/{instance}/items/{row_id}")
def items_remove(instance: str, row_id: str, cart_store: CartStore = Depends(get_store)):
    cart = _open(instance, cart_store)
    cart.remove(row_id)
    _commit(cart)
    return _summary(cart)


# ---------------- price rules ----------------

@app.post("/carts/{instance}/price-rules")
def price_rules_add(
    instance: str,
    payload: PriceRuleIn,
    cart_store: CartStore = Depends(get_store),
):
    cart = _open(instance, cart_store)
    cart.add_price_rule(payload.to_rule())
    _commit(cart)
    return _summary(cart)


# ---------------- shipping ----------------

@app.put("/carts/{instance}/shipping")
def shipping_set(
    instance: str,
    payload: ShippingIn,
    cart_store: CartStore = Depends(get_store),
):
    cart = _open(instance, cart_store)
    cart.set_shipping(payload.has_shipping)
    cart.set_shipping_amount(payload.amount)
    _commit(cart)
    return _summary(cart)


# ---------------- receipt ----------------

@app.get("/carts/{instance}/receipt.pdf", response_class=FileResponse)
def receipt(instance: str, cart_store: CartStore = Depends(get_store)):
    cart = _open(instance, cart_store)
    if not cart.count():
        raise HTTPException(status_code=404, detail="cart is empty")

    os.makedirs(settings.export_dir, exist_ok=True)
    path = generate_receipt_pdf(cart, os.path.join(settings.export_dir, f"receipt_{instance}.pdf"))
    return FileResponse(path, media_type="application/pdf", filename=os.path.basename(path))
