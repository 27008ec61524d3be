from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import quote


QueryParameters = Dict[str, List[str]]


@dataclass(frozen=True)
class TrackedPath:
    account: str
    page: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return not self.account

    @property
    def is_tracked(self) -> bool:
        return self.page is not None


@dataclass
class BeaconRequest:
    """Interpreted state of one inbound beacon request."""

    path: TrackedPath
    query: QueryParameters
    referer: str = ""
    client_id: str = ""
    new_client: bool = False

    @property
    def cookie_path(self) -> str:
        # The account segment arrives URL-decoded.
        return "/" + quote(self.path.account, safe="")
