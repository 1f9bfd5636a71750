"""
Site identity resolver

Plans reference sites by canonical ID while field logs carry whatever the
app displayed (English name, Lao name or short code). The resolver maps all
of those onto one canonical ID so the matcher can compare like with like.
"""
import logging
import unicodedata
from typing import Dict, Iterable, Optional, Tuple

from app.services.patrol_types import SiteRecord

logger = logging.getLogger(__name__)


def normalize_site_text(value) -> str:
    """NFC, case-folded, internal whitespace collapsed, trimmed"""
    if value is None:
        return ''
    text = unicodedata.normalize('NFC', str(value))
    return ' '.join(text.casefold().split())


class SiteIdentityResolver:
    """
    Lookup from any known site reference to its canonical ID.

    Built once per query from the Site Registry. Resolving never raises:
    an unknown reference comes back trimmed with resolved=False.
    """

    def __init__(self, sites: Iterable[SiteRecord] = ()):
        self._lookup: Dict[str, str] = {}
        self._display_names: Dict[str, str] = {}
        for site in sites:
            self._add(site)

    def _add(self, site: SiteRecord) -> None:
        if not site.id:
            return
        self._display_names[site.id] = site.name_en or site.id
        # First registration wins when two sites share a name or code
        for ref in (site.id, site.code, site.name_en, site.name_lo):
            key = normalize_site_text(ref)
            if key and key not in self._lookup:
                self._lookup[key] = site.id

    def __len__(self) -> int:
        return len(self._display_names)

    def resolve(self, reference) -> Tuple[str, bool]:
        """Return (canonical_id, True) or (trimmed reference, False)"""
        key = normalize_site_text(reference)
        site_id = self._lookup.get(key) if key else None
        if site_id is not None:
            return site_id, True
        return str(reference or '').strip(), False

    def display_name(self, site_id: str) -> Optional[str]:
        """Canonical English display name for a site ID"""
        return self._display_names.get(site_id)

    def same_site(self, plan_site_id: str, plan_site_name: str,
                  visit_site_id: str, visit_resolved: bool, visit_site_name: str) -> bool:
        """
        Plan/visit site equality.

        Compares IDs when both sides resolved against the registry,
        normalized names otherwise.
        """
        plan_id, plan_resolved = self.resolve(plan_site_id)
        if plan_resolved and visit_resolved:
            return plan_id == visit_site_id
        plan_name = normalize_site_text(plan_site_name or plan_site_id)
        return bool(plan_name) and plan_name == normalize_site_text(visit_site_name)
