"""
Jurisdiction registry: the 50 US states a survey iterates over.

Order is fixed (it drives batch partitioning) and never changes at runtime.
"""

from typing import Literal, get_args

from pydantic import BaseModel, Field

JurisdictionCode = Literal[
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
]

ALL_JURISDICTION_CODES: tuple[str, ...] = get_args(JurisdictionCode)


class Jurisdiction(BaseModel):
    """Single state record: code, name, legal-code terms and official sources."""

    code: JurisdictionCode
    name: str = Field(..., min_length=1)
    fips: str = Field(..., min_length=2, max_length=2, description="2-digit FIPS state code")
    terms: list[str] = Field(default_factory=list, description="Legal code names; first is the query qualifier")
    legislature_url: str = Field(..., description="Official legislature homepage")
    civil_law: bool = Field(default=False, description="True for civil-law jurisdictions (Louisiana)")

    model_config = {"frozen": True}

    @property
    def code_qualifier(self) -> str | None:
        """Legal-code qualifier appended to boolean queries, if any."""
        return self.terms[0] if self.terms else None


def _j(code: str, name: str, fips: str, terms: list[str], url: str, civil_law: bool = False) -> Jurisdiction:
    return Jurisdiction(code=code, name=name, fips=fips, terms=terms, legislature_url=url, civil_law=civil_law)


JURISDICTIONS: tuple[Jurisdiction, ...] = (
    _j("AL", "Alabama", "01", ["Code of Alabama"], "https://alison.legislature.state.al.us/"),
    _j("AK", "Alaska", "02", ["Alaska Statutes"], "https://www.akleg.gov/"),
    _j("AZ", "Arizona", "04", ["Arizona Revised Statutes"], "https://www.azleg.gov/"),
    _j("AR", "Arkansas", "05", ["Arkansas Code"], "https://www.arkleg.state.ar.us/"),
    _j("CA", "California", "06", ["California Codes", "Civil Code", "Penal Code"], "https://leginfo.legislature.ca.gov/"),
    _j("CO", "Colorado", "08", ["Colorado Revised Statutes"], "https://leg.colorado.gov/"),
    _j("CT", "Connecticut", "09", ["Connecticut General Statutes"], "https://www.cga.ct.gov/"),
    _j("DE", "Delaware", "10", ["Delaware Code"], "https://legis.delaware.gov/"),
    _j("FL", "Florida", "12", ["Florida Statutes"], "http://www.leg.state.fl.us/"),
    _j("GA", "Georgia", "13", ["Official Code of Georgia"], "https://www.legis.ga.gov/"),
    _j("HI", "Hawaii", "15", ["Hawaii Revised Statutes"], "https://www.capitol.hawaii.gov/"),
    _j("ID", "Idaho", "16", ["Idaho Code"], "https://legislature.idaho.gov/"),
    _j("IL", "Illinois", "17", ["Illinois Compiled Statutes"], "https://www.ilga.gov/"),
    _j("IN", "Indiana", "18", ["Indiana Code"], "https://iga.in.gov/"),
    _j("IA", "Iowa", "19", ["Iowa Code"], "https://www.legis.iowa.gov/"),
    _j("KS", "Kansas", "20", ["Kansas Statutes"], "https://www.kslegislature.org/"),
    _j("KY", "Kentucky", "21", ["Kentucky Revised Statutes"], "https://legislature.ky.gov/"),
    _j("LA", "Louisiana", "22", ["Louisiana Civil Code", "Liberative Prescription"], "https://legis.la.gov/", civil_law=True),
    _j("ME", "Maine", "23", ["Maine Revised Statutes"], "https://legislature.maine.gov/"),
    _j("MD", "Maryland", "24", ["Maryland Code"], "https://mgaleg.maryland.gov/"),
    _j("MA", "Massachusetts", "25", ["Massachusetts General Laws"], "https://malegislature.gov/"),
    _j("MI", "Michigan", "26", ["Michigan Compiled Laws"], "https://www.legislature.mi.gov/"),
    _j("MN", "Minnesota", "27", ["Minnesota Statutes"], "https://www.revisor.mn.gov/"),
    _j("MS", "Mississippi", "28", ["Mississippi Code"], "http://www.legislature.ms.gov/"),
    _j("MO", "Missouri", "29", ["Missouri Revised Statutes"], "https://www.house.mo.gov/"),
    _j("MT", "Montana", "30", ["Montana Code"], "https://leg.mt.gov/"),
    _j("NE", "Nebraska", "31", ["Nebraska Revised Statutes"], "https://nebraskalegislature.gov/"),
    _j("NV", "Nevada", "32", ["Nevada Revised Statutes"], "https://www.leg.state.nv.us/"),
    _j("NH", "New Hampshire", "33", ["New Hampshire Revised Statutes"], "http://www.gencourt.state.nh.us/"),
    _j("NJ", "New Jersey", "34", ["New Jersey Statutes"], "https://www.njleg.state.nj.us/"),
    _j("NM", "New Mexico", "35", ["New Mexico Statutes"], "https://www.nmlegis.gov/"),
    _j("NY", "New York", "36", ["Consolidated Laws", "CPLR"], "https://www.nysenate.gov/"),
    _j("NC", "North Carolina", "37", ["North Carolina General Statutes"], "https://www.ncleg.gov/"),
    _j("ND", "North Dakota", "38", ["North Dakota Century Code"], "https://www.ndlegis.gov/"),
    _j("OH", "Ohio", "39", ["Ohio Revised Code"], "https://www.legislature.ohio.gov/"),
    _j("OK", "Oklahoma", "40", ["Oklahoma Statutes"], "https://www.oklegislature.gov/"),
    _j("OR", "Oregon", "41", ["Oregon Revised Statutes"], "https://www.oregonlegislature.gov/"),
    _j("PA", "Pennsylvania", "42", ["Pennsylvania Consolidated Statutes"], "https://www.legis.state.pa.us/"),
    _j("RI", "Rhode Island", "44", ["Rhode Island General Laws"], "http://www.rilegislature.gov/"),
    _j("SC", "South Carolina", "45", ["South Carolina Code of Laws"], "https://www.scstatehouse.gov/"),
    _j("SD", "South Dakota", "46", ["South Dakota Codified Laws"], "https://sdlegislature.gov/"),
    _j("TN", "Tennessee", "47", ["Tennessee Code"], "https://www.capitol.tn.gov/"),
    _j("TX", "Texas", "48", ["Texas Statutes", "Texas Civil Practice"], "https://capitol.texas.gov/"),
    _j("UT", "Utah", "49", ["Utah Code"], "https://le.utah.gov/"),
    _j("VT", "Vermont", "50", ["Vermont Statutes"], "https://legislature.vermont.gov/"),
    _j("VA", "Virginia", "51", ["Code of Virginia"], "https://virginiageneralassembly.gov/"),
    _j("WA", "Washington", "53", ["Revised Code of Washington"], "https://leg.wa.gov/"),
    _j("WV", "West Virginia", "54", ["West Virginia Code"], "https://www.wvlegislature.gov/"),
    _j("WI", "Wisconsin", "55", ["Wisconsin Statutes"], "https://legis.wisconsin.gov/"),
    _j("WY", "Wyoming", "56", ["Wyoming Statutes"], "https://www.wyoleg.gov/"),
)

_BY_CODE: dict[str, Jurisdiction] = {j.code: j for j in JURISDICTIONS}


def get_jurisdiction(code: str) -> Jurisdiction | None:
    """Return the jurisdiction for a 2-letter code (case-insensitive), or None."""
    return _BY_CODE.get(str(code).strip().upper())


def require_jurisdiction(code: str) -> Jurisdiction:
    """Return the jurisdiction for a code or raise ValueError for an unknown code."""
    jurisdiction = get_jurisdiction(code)
    if jurisdiction is None:
        raise ValueError(f"Unknown jurisdiction code: {code!r}")
    return jurisdiction


def get_jurisdiction_by_fips(fips: str) -> Jurisdiction | None:
    """Return a jurisdiction by its 2-digit FIPS state code."""
    fips = str(fips).strip().zfill(2)
    for j in JURISDICTIONS:
        if j.fips == fips:
            return j
    return None
