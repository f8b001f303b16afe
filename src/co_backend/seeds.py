from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from .models import Site


def seed_sites(session: Session) -> int:
    """
    Insert the initial Site rows (wknd) if they do not already exist.

    Returns the number of sites created.
    """
    initial_sites: Iterable[tuple[str, str, str, str, str]] = [
        (
            "wknd",
            "WKND",
            "wknd.site",
            "pkoch73",
            "wknd",
        ),
    ]

    # Flush pending Site objects so existing ids are complete for this session.
    session.flush()

    existing_ids = {site_id for (site_id,) in session.query(Site.id).all()}

    created = 0
    for site_id, name, domain, source_org, source_repo in initial_sites:
        if site_id in existing_ids:
            continue
        session.add(
            Site(
                id=site_id,
                name=name,
                domain=domain,
                source_org=source_org,
                source_repo=source_repo,
            )
        )
        created += 1

    return created


__all__ = ["seed_sites"]
