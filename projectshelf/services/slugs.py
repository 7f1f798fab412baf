import re
from typing import Optional

from sqlalchemy.orm import Session

from projectshelf.models.project import Project

FALLBACK_SLUG = "project"

_STRIP = re.compile(r"[^\w\s-]", re.ASCII)
_SEPARATORS = re.compile(r"[\s_-]+", re.ASCII)


def slugify(title: str) -> str:
    """
    "My Demo!" -> "my-demo". Lowercase, drop anything that isn't a word char,
    whitespace or hyphen, collapse separator runs into one hyphen, trim hyphens.
    """
    slug = _STRIP.sub("", title.lower())
    slug = _SEPARATORS.sub("-", slug)
    return slug.strip("-")


def unique_slug(db: Session, title: str, exclude_id: Optional[str] = None) -> str:
    """Slug for `title` that no other project uses; collisions get -2, -3, ..."""
    base = slugify(title) or FALLBACK_SLUG

    query = db.query(Project.slug).filter(
        (Project.slug == base) | (Project.slug.like(f"{base}-%"))
    )
    if exclude_id:
        query = query.filter(Project.id != exclude_id)
    taken = {row[0] for row in query.all()}

    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"
