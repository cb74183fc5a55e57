class FetchError(Exception):
    """A page could not be fetched or rendered."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class FetchTimeout(FetchError):
    """A request timed out, or the per-company deadline passed."""


class ScrapeCancelled(Exception):
    """The batch was cancelled; the current company is abandoned before any write."""


class UnknownCompanyError(KeyError):
    def __init__(self, company_id: str):
        super().__init__(company_id)
        self.company_id = company_id

    def __str__(self) -> str:
        return f"no adapter registered for company '{self.company_id}'"
