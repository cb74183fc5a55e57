"""
Bolshoi Ballet adapter.

NOTE: bolshoi.ru does not answer requests from outside Russia reliably and
renders its playbill client-side behind a geo check, so there is nothing to
extract. Company info comes from the static defaults below and performances
always come from the fallback dataset (the result is tagged fallback_used).

To make this adapter scrape for real, implement extract_performances()
against the English playbill (https://www.bolshoi.ru/en/afisha) once it can
be reached, and keep returning [] when it cannot.
"""

from typing import Optional

from worldballets.models import CompanyInfo, RawPerformance
from worldballets.scrapers.base import BaseAdapter


class BolshoiAdapter(BaseAdapter):
    company_id = "bolshoi"
    company_name = "Bolshoi Ballet"
    short_name = "BOLSHOI"
    website_url = "https://www.bolshoi.ru/en/"
    base_url = "https://www.bolshoi.ru"

    def extract_company_info(self) -> Optional[CompanyInfo]:
        return CompanyInfo(
            name=self.company_name,
            short_name=self.short_name,
            description=(
                "The Bolshoi Ballet is an internationally renowned classical ballet company, "
                "based at the Bolshoi Theatre in Moscow, Russia. Founded in 1776, the Bolshoi "
                "is among the world's oldest and most prestigious ballet companies."
            ),
            logo_url="",
            website_url=self.website_url,
        )

    def extract_performances(self) -> list[RawPerformance]:
        return []
