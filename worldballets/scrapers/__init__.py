"""
Adapter registry.

To add a new ballet company:
1. Create <company_id>.py with a BaseAdapter subclass setting company_id,
   company_name, short_name, website_url and base_url
2. Implement extract_performances() (and extract_company_info() if the site
   has an about page worth scraping)
3. Add a [<company_id>] section to data/fallbacks.toml
4. Import and register the class in the ADAPTERS dict below
"""

from worldballets.errors import UnknownCompanyError
from worldballets.scrapers.abt import ABTAdapter
from worldballets.scrapers.base import BaseAdapter
from worldballets.scrapers.bolshoi import BolshoiAdapter
from worldballets.scrapers.boston import BostonBalletAdapter
from worldballets.scrapers.nbc import NBCAdapter
from worldballets.scrapers.rb import RoyalBalletAdapter
from worldballets.scrapers.stuttgart import StuttgartBalletAdapter

ADAPTERS: dict[str, type[BaseAdapter]] = {
    "abt": ABTAdapter,
    "nbc": NBCAdapter,
    "rb": RoyalBalletAdapter,
    "stuttgart": StuttgartBalletAdapter,
    "boston": BostonBalletAdapter,
    "bolshoi": BolshoiAdapter,
}


def get_adapter_class(company_id: str) -> type[BaseAdapter]:
    try:
        return ADAPTERS[company_id]
    except KeyError:
        raise UnknownCompanyError(company_id) from None
