# app/api/routers/categories.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.data.database import get_db
from app.domain.schemas import CategoryCreate, CategoryListOut, CategoryOut, CategoryUpdate
from app.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])
admin_router = APIRouter(
    prefix="/admin/categories",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


def get_service(db: Session):
    return CategoryService(db)


@router.get("", response_model=CategoryListOut)
def list_categories(db: Session = Depends(get_db)):
    return get_service(db).list_tree()


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, db: Session = Depends(get_db)):
    return CategoryOut(category=get_service(db).get_category(category_id))


@admin_router.post("", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    svc = get_service(db)
    return CategoryOut(message="Category created successfully", category=svc.create_category(payload))


@admin_router.put("/{category_id}", response_model=CategoryOut)
def update_category(category_id: int, payload: CategoryUpdate, db: Session = Depends(get_db)):
    svc = get_service(db)
    return CategoryOut(message="Category updated", category=svc.update_category(category_id, payload))


@admin_router.delete("/{category_id}", response_model=CategoryOut)
def delete_category(category_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    return CategoryOut(message="Category archived successfully", category=svc.delete_category(category_id))
