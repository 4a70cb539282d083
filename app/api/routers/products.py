# app/api/routers/products.py
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.data.database import get_db
from app.domain.schemas import (
    BulkArchiveOut,
    BulkIdsIn,
    LowStockOut,
    ProductCreate,
    ProductListOut,
    ProductOut,
    ProductUpdate,
    RelatedOut,
    StockAdjustIn,
)
from app.services.product_service import ProductService
from app.utils.settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/products", tags=["products"])
admin_router = APIRouter(
    prefix="/admin/products",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


def get_service(db: Session):
    return ProductService(db)


# =====================================================
# PUBLIC
# =====================================================

@router.get("", response_model=ProductListOut)
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    category: str | None = None,
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    featured: bool = False,
    q: str | None = None,
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.list_products(
        page=page,
        limit=limit,
        category_slug=category,
        min_price=min_price,
        max_price=max_price,
        featured=featured,
        q=q,
    )


@router.get("/search", response_model=ProductListOut)
def search_products(
    q: str = "",
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    return get_service(db).search(q, page=page, limit=limit)


@router.get("/featured", response_model=ProductListOut)
def featured_products(
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    return get_service(db).featured(limit=limit)


@router.get("/category/{slug}", response_model=ProductListOut)
def products_by_category(
    slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    return get_service(db).by_category(slug, page=page, limit=limit)


@router.get("/{slug}/related", response_model=RelatedOut)
def related_products(
    slug: str,
    limit: int = Query(8, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    return RelatedOut(related=get_service(db).related(slug, limit=limit))


@router.get("/{slug}", response_model=ProductOut)
def get_product(slug: str, db: Session = Depends(get_db)):
    return ProductOut(product=get_service(db).get_by_slug(slug))


# =====================================================
# ADMIN
# =====================================================

@admin_router.post("", response_model=ProductOut, status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    svc = get_service(db)
    return ProductOut(message="Product created successfully", product=svc.create_product(payload))


@admin_router.get("/low-stock", response_model=LowStockOut)
def low_stock(db: Session = Depends(get_db)):
    entries = get_service(db).low_stock()
    return LowStockOut(count=len(entries), variants=entries)


@admin_router.get("/archived", response_model=ProductListOut)
def archived_products(db: Session = Depends(get_db)):
    return get_service(db).list_by_status("archived")


@admin_router.get("/drafts", response_model=ProductListOut)
def draft_products(db: Session = Depends(get_db)):
    return get_service(db).list_by_status("draft")


@admin_router.post("/bulk-delete", response_model=BulkArchiveOut)
def bulk_delete(payload: BulkIdsIn, db: Session = Depends(get_db)):
    modified = get_service(db).bulk_archive(payload.ids)
    return BulkArchiveOut(message="Products archived", modified_count=modified)


@admin_router.put("/{product_id}", response_model=ProductOut)
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    svc = get_service(db)
    return ProductOut(message="Product updated successfully", product=svc.update_product(product_id, payload))


@admin_router.delete("/{product_id}", response_model=ProductOut)
def archive_product(product_id: int, db: Session = Depends(get_db)):
    return ProductOut(message="Product archived", product=get_service(db).archive(product_id))


@admin_router.put("/{product_id}/restore", response_model=ProductOut)
def restore_product(product_id: int, db: Session = Depends(get_db)):
    return ProductOut(message="Product restored", product=get_service(db).restore(product_id))


@admin_router.post("/{product_id}/variants/{variant_id}/stock", response_model=ProductOut)
def adjust_stock(
    product_id: int,
    variant_id: int,
    payload: StockAdjustIn,
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return ProductOut(message="Stock updated", product=svc.adjust_stock(product_id, variant_id, payload.delta))


@admin_router.delete("/{product_id}/variants/{variant_id}", response_model=ProductOut)
def remove_variant(product_id: int, variant_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    return ProductOut(message="Variant removed", product=svc.remove_variant(product_id, variant_id))
