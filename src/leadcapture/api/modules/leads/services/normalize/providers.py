import re
from dataclasses import dataclass

OTHER_PROVIDER = "Other"
UNKNOWN_PROVIDER = "Unknown Provider"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")


@dataclass(frozen=True, slots=True)
class ProviderInfo:
    display: str
    dsar_email: str
    formerly: str | None = None

    @property
    def loa(self) -> str:
        if self.formerly:
            return f"{self.display} (formerly {self.formerly})"
        return self.display


@dataclass(frozen=True, slots=True)
class ResolvedProvider:
    display: str | None
    loa: str | None
    dsar_email: str | None


# Legacy identifier -> current trading name, legacy name, DSAR address
PROVIDER_MAP: dict[str, ProviderInfo] = {
    "Aperture": ProviderInfo(
        "Debt Movement", "complaints@debtmovement.co.uk", "Aperture Debt Solutions"
    ),
    "Creditfix": ProviderInfo("Creditfix", "complaints@creditfix.co.uk"),
    "DebtMovement": ProviderInfo("Debt Movement", "complaints@debtmovementuk.co.uk"),
    "Ebenegate": ProviderInfo("Ebenegate", "client@ebenegate.co.uk"),
    "FinancialWellnessGroup": ProviderInfo(
        "Financial Wellness Group", "contactus@financialwellnessgroup.co.uk"
    ),
    "FreemanJones": ProviderInfo("Freeman Jones", "contactus@freemanjones.co.uk"),
    "GrantThornton": ProviderInfo(
        "Debt Movement", "complaints@debtmovement.co.uk", "Grant Thornton"
    ),
    "HanoverInsolvency": ProviderInfo(
        "Ebenegate", "client@ebenegate.co.uk", "Hanover Insolvency"
    ),
    "HarringtonBrooks": ProviderInfo(
        "Freeman Jones", "contactus@freemanjones.co.uk", "Harrington Brooks"
    ),
    "JarvisInsolvency": ProviderInfo(
        "Debt Movement", "complaints@debtmovementuk.co.uk", "Jarvis Insolvency"
    ),
    "JohnsonGeddes": ProviderInfo("Johnson Geddes", "enquiries@johnsongeddes.co.uk"),
    "KingsgateInsolvency": ProviderInfo(
        "MoneyPlus Group", "info@moneyplus.com", "Kingsgate Insolvency"
    ),
    "Payplan": ProviderInfo("Payplan", "ed.leavers@payplan.com"),
    "TheAdviceCenter": ProviderInfo(
        "The Advice Centre", "Enquiries@advicecentregroup.co.uk"
    ),
    "TotalDebtRelief": ProviderInfo("Total Debt Relief", "totaldebtrelief@griffins.net"),
}


def format_provider_name(identifier: str) -> str:
    """``"SomeProvider_name"`` -> ``"Some Provider Name"``."""
    spaced = _CAMEL_BOUNDARY.sub(" ", identifier.replace("_", " ").replace("-", " "))
    return " ".join(word.capitalize() for word in spaced.split())


def resolve_provider(
    identifier: str | None,
    other_provider: str | None = None,
) -> ResolvedProvider:
    if not identifier:
        return ResolvedProvider(display=None, loa=None, dsar_email=None)

    if identifier == OTHER_PROVIDER:
        name = (other_provider or "").strip() or UNKNOWN_PROVIDER
        return ResolvedProvider(display=name, loa=name, dsar_email=None)

    info = PROVIDER_MAP.get(identifier)
    if info is None:
        name = format_provider_name(identifier)
        return ResolvedProvider(display=name, loa=name, dsar_email=None)

    return ResolvedProvider(display=info.display, loa=info.loa, dsar_email=info.dsar_email)


__all__ = (
    "OTHER_PROVIDER",
    "PROVIDER_MAP",
    "UNKNOWN_PROVIDER",
    "ProviderInfo",
    "ResolvedProvider",
    "format_provider_name",
    "resolve_provider",
)
