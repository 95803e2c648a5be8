from sqlalchemy.orm import Session
from typing import List, Optional
from boatyard.models.site import Site
from boatyard.models.location import Location
from boatyard.schemas.site import SiteCreate

def get_site(db: Session, site_id: str) -> Optional[Site]:
    return db.query(Site).filter(Site.id == site_id).first()

def get_site_by_name(db: Session, name: str) -> Optional[Site]:
    return db.query(Site).filter(Site.name == name).first()

def get_sites(db: Session) -> List[Site]:
    return db.query(Site).order_by(Site.name).all()

def create_site(db: Session, site: SiteCreate) -> Site:
    db_site = Site(**site.model_dump())
    db.add(db_site)
    db.commit()
    db.refresh(db_site)
    return db_site

def delete_site(db: Session, site_id: str) -> Optional[Site]:
    """Delete a site; its locations stay and lose their grouping"""
    db_site = db.query(Site).filter(Site.id == site_id).first()
    if not db_site:
        return None
    try:
        db.query(Location).filter(Location.site_id == site_id).update({Location.site_id: None})
        db.delete(db_site)
        db.commit()
        return db_site
    except Exception:
        db.rollback()
        raise
