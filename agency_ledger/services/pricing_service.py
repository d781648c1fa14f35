"""Company pricing configurations"""

from typing import Any, Dict, List, Optional, Tuple

from agency_ledger.domain.exceptions import NotFoundError, ValidationError
from agency_ledger.domain.pricing import PricingRule, parse_pricing_rules, quote, rules_to_dict
from agency_ledger.infrastructure.database.models import PricingConfig
from agency_ledger.infrastructure.database.repositories import PricingRepository
from agency_ledger.services.base import BaseService, snapshot


class PricingService(BaseService):
    """Stores one rule set per company and pricing type and prices offers with it"""

    def upsert(self, company: str, pricing_type: str, rules: Optional[Dict[str, Any]]) -> Tuple[PricingConfig, bool]:
        """Returns the stored config and whether it was newly created"""
        with self._transaction():
            if not company or not company.strip():
                raise ValidationError("company is required", field="company")
            company = company.strip()
            rule = parse_pricing_rules(pricing_type, rules)

            repo = PricingRepository(self.db)
            config = repo.get(company, pricing_type)
            created = config is None
            old_value = None if created else snapshot(config)

            if created:
                config = repo.add(PricingConfig(company=company, pricing_type=pricing_type, rules=rules_to_dict(rule)))
            else:
                config.rules = rules_to_dict(rule)

            self.db.flush()
            self.audit.record(
                "CREATE" if created else "UPDATE",
                "pricing_config",
                config.id,
                old_value=old_value,
                new_value=snapshot(config),
            )

        return config, created

    def get(self, company: str, pricing_type: str) -> PricingConfig:
        config = PricingRepository(self.db).get(company, pricing_type)
        if config is None:
            raise NotFoundError("Pricing configuration")
        return config

    def list_for_company(self, company: str) -> List[PricingConfig]:
        return PricingRepository(self.db).list_for_company(company)

    def rule(self, company: str, pricing_type: str) -> PricingRule:
        config = self.get(company, pricing_type)
        return parse_pricing_rules(config.pricing_type, config.rules)

    def quote(
        self,
        company: str,
        pricing_type: str,
        vehicle_type: Optional[str] = None,
        driver_age_group: Optional[str] = None,
        offer_amount: int = 0,
    ) -> Optional[int]:
        """Suggested price, or None when the type is priced by hand or elsewhere"""
        return quote(self.rule(company, pricing_type), vehicle_type, driver_age_group, offer_amount)
