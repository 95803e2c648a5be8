from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from boatyard.database import get_db
from boatyard.crud import site as site_crud
from boatyard.schemas.site import SiteCreate, SiteResponse

router = APIRouter(
    prefix="/sites",
    tags=["sites"]
)

@router.get("/", response_model=List[SiteResponse])
def get_sites(db: Session = Depends(get_db)):
    """Get all sites"""
    return [SiteResponse.model_validate(site) for site in site_crud.get_sites(db)]

@router.post("/", response_model=SiteResponse, status_code=status.HTTP_201_CREATED)
def create_site(site: SiteCreate, db: Session = Depends(get_db)):
    """Create new site"""
    if site_crud.get_site_by_name(db, site.name):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[{"field": "name", "message": "Site with this name already exists"}]
        )
    return SiteResponse.model_validate(site_crud.create_site(db, site))

@router.get("/{site_id}", response_model=SiteResponse)
def get_site(site_id: str, db: Session = Depends(get_db)):
    """Get site by ID"""
    site = site_crud.get_site(db, site_id)
    if not site:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=[{"field": "site_id", "message": "Site not found"}]
        )
    return SiteResponse.model_validate(site)

@router.delete("/{site_id}", response_model=SiteResponse)
def delete_site(site_id: str, db: Session = Depends(get_db)):
    """Delete site (its locations are kept and become ungrouped)"""
    site = site_crud.get_site(db, site_id)
    if not site:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=[{"field": "site_id", "message": "Site not found"}]
        )
    response = SiteResponse.model_validate(site)
    site_crud.delete_site(db, site_id)
    return response
