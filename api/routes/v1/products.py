"""
api/routes/v1/products.py -- Product routes for the REST API.

Routes:
  POST   /products                -- create a product
  GET    /products                -- list products (optional category/search/price filters)
  GET    /products/{product_id}   -- product detail
  PATCH  /products/{product_id}   -- partial update
  DELETE /products/{product_id}   -- remove a product

Filtering happens on the snapshot returned by MemoryDB.list_products(); the
store itself only indexes by id.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.limiter import limiter
from api.models import ErrorDetail, ProductCreate, ProductResponse, ProductUpdate
from auth.dependencies import get_current_user
from memdb.models import Product, User
from memdb.store import MemoryDB

logger = logging.getLogger("memdb.api.products")

# All product routes require authentication.
router = APIRouter(dependencies=[Depends(get_current_user)])


def _not_found(product_id: int) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="product_not_found", message=f"Product {product_id} not found.").model_dump(),
    )


@router.post("/products", response_model=ProductResponse, status_code=201)
@limiter.limit("30/minute")
def create_product(request: Request, body: ProductCreate) -> ProductResponse:
    """Add a product to the catalogue. New products are always active."""
    db: MemoryDB = request.app.state.db
    product = db.create_product(
        Product(
            name=body.name,
            description=body.description,
            price=body.price,
            stock=body.stock,
            category=body.category,
            is_active=True,
        )
    )
    logger.info("Product %d created (%s)", product.id, product.name)
    return ProductResponse.from_product(product)


@router.get("/products", response_model=list[ProductResponse])
@limiter.limit("60/minute")
def list_products(
    request: Request,
    category: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
) -> list[ProductResponse]:
    """Return all products ordered by id.

    Query params:
      category -- exact, case-insensitive category match
      search   -- case-insensitive substring of name or description
      min_price, max_price -- inclusive price bounds
    """
    db: MemoryDB = request.app.state.db
    products = db.list_products()
    if category:
        wanted = category.lower()
        products = [p for p in products if p.category.lower() == wanted]
    if search:
        needle = search.lower()
        products = [p for p in products if needle in p.name.lower() or needle in p.description.lower()]
    if min_price is not None:
        products = [p for p in products if p.price >= min_price]
    if max_price is not None:
        products = [p for p in products if p.price <= max_price]
    products.sort(key=lambda p: p.id)
    return [ProductResponse.from_product(p) for p in products]


@router.get("/products/{product_id}", response_model=ProductResponse)
@limiter.limit("60/minute")
def get_product(request: Request, product_id: int) -> ProductResponse:
    db: MemoryDB = request.app.state.db
    product = db.get_product(product_id)
    if product is None:
        raise _not_found(product_id)
    return ProductResponse.from_product(product)


@router.patch("/products/{product_id}", response_model=ProductResponse)
@limiter.limit("30/minute")
def update_product(request: Request, product_id: int, body: ProductUpdate) -> ProductResponse:
    """Update any subset of name, description, price, stock, category, is_active."""
    db: MemoryDB = request.app.state.db
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if changes:
        product = db.update_product(product_id, **changes)
    else:
        product = db.get_product(product_id)
    if product is None:
        raise _not_found(product_id)
    logger.info("Product %d updated (%s)", product_id, ", ".join(sorted(changes)) or "no changes")
    return ProductResponse.from_product(product)


@router.delete("/products/{product_id}", status_code=204)
@limiter.limit("30/minute")
def delete_product(request: Request, product_id: int, current_user: User = Depends(get_current_user)) -> Response:
    db: MemoryDB = request.app.state.db
    if not db.delete_product(product_id):
        raise _not_found(product_id)
    logger.info("Product %d deleted by user %d", product_id, current_user.id)
    return Response(status_code=204)
