"""
Schedule API client: fetches the raw services/getAll.json document with a bearer token.
Returns bytes; decoding is directory.normalize's job.
"""
import logging

import httpx

from overview_web.errors import NotAuthenticated, ScheduleUnavailable

logger = logging.getLogger(__name__)

SERVICES_PATH = "/services/getAll.json"
SERVICES_PARAMS = {
    "page": "1",
    "page_size": "100",
    "status": "published",
    "fields[0]": "volunteers",
}


class ScheduleClient:
    def __init__(self, http: httpx.Client, api_base: str):
        self._http = http
        self._url = f"{api_base.rstrip('/')}{SERVICES_PATH}"

    def fetch_services(self, access_token: str) -> bytes:
        """
        GET the published services with volunteers. A 401 means the token is no longer accepted
        and is raised as NotAuthenticated; other failures as ScheduleUnavailable.
        """
        try:
            r = self._http.get(
                self._url,
                params=SERVICES_PARAMS,
                headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.warning("Schedule API unreachable: %s", e.__class__.__name__)
            raise ScheduleUnavailable(f"schedule API unreachable: {e.__class__.__name__}") from e
        if r.status_code == 401:
            raise NotAuthenticated("schedule API rejected the access token")
        if not r.is_success:
            logger.warning("Schedule API returned status=%s", r.status_code)
            raise ScheduleUnavailable(f"schedule API returned HTTP {r.status_code}", status=r.status_code)
        logger.debug("Fetched schedule document (%d bytes)", len(r.content))
        return r.content
