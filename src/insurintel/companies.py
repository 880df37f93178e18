"""Closed set of tracked insurance companies.

Each row: (ticker, CIK, name, segment, sub-segment, SIC code). The segment
drives ratio gating, so it is fixed here rather than inferred from SIC; SIC is
kept for companies added to the store by hand without a segment.
"""

from __future__ import annotations

from insurintel.models import CompanyRecord
from insurintel.xbrl_mappings import Segment

_SEED_ROWS: list[tuple[str, str, str, str, str, str]] = [
    ("CB", "0000896159", "Chubb Limited", "P&C", "Commercial Lines", "6331"),
    ("PGR", "0000080661", "Progressive Corporation", "P&C", "Personal Lines", "6331"),
    ("TRV", "0000086312", "Travelers Companies", "P&C", "Commercial Lines", "6331"),
    ("ALL", "0000899051", "Allstate Corporation", "P&C", "Personal Lines", "6331"),
    ("AIG", "0000005272", "American International Group", "P&C", "Commercial Lines", "6331"),
    ("HIG", "0000874766", "Hartford Financial Services", "P&C", "Commercial Lines", "6331"),
    ("ACGL", "0000947484", "Arch Capital Group", "P&C", "Specialty", "6331"),
    ("WRB", "0000011544", "W.R. Berkley Corporation", "P&C", "Specialty", "6331"),
    ("CINF", "0000020286", "Cincinnati Financial", "P&C", "Commercial Lines", "6331"),
    ("MKL", "0001096343", "Markel Group", "P&C", "Specialty", "6331"),
    ("CNA", "0000021175", "CNA Financial", "P&C", "Commercial Lines", "6331"),
    ("ERIE", "0000922621", "Erie Indemnity", "P&C", "Personal Lines", "6331"),
    ("AFG", "0001042046", "American Financial Group", "P&C", "Specialty", "6331"),
    ("ORI", "0000074260", "Old Republic International", "P&C", "Commercial Lines", "6331"),
    ("AIZ", "0001267238", "Assurant", "P&C", "Specialty", "6331"),
    ("KNSL", "0001669162", "Kinsale Capital Group", "P&C", "E&S Specialty", "6331"),
    ("RLI", "0000084246", "RLI Corp", "P&C", "Specialty", "6331"),
    ("SIGI", "0000230557", "Selective Insurance Group", "P&C", "Commercial Lines", "6331"),
    ("PLMR", "0001761312", "Palomar Holdings", "P&C", "Specialty", "6331"),
    ("THG", "0000944695", "Hanover Insurance Group", "P&C", "Commercial Lines", "6331"),
    ("KMPR", "0000860748", "Kemper Corporation", "P&C", "Personal Lines", "6331"),
    ("MCY", "0000064996", "Mercury General", "P&C", "Personal Lines", "6331"),
    ("WTM", "0000776867", "White Mountains Insurance Group", "P&C", "Specialty", "6331"),
    ("AGO", "0001273813", "Assured Guaranty", "P&C", "Financial Guaranty", "6351"),
    ("MET", "0001099219", "MetLife", "Life", "Life & Annuities", "6311"),
    ("PRU", "0001137774", "Prudential Financial", "Life", "Life & Annuities", "6311"),
    ("AFL", "0000004977", "Aflac", "Life", "Supplemental", "6311"),
    ("CRBG", "0001889539", "Corebridge Financial", "Life", "Life & Annuities", "6311"),
    ("PFG", "0001126328", "Principal Financial Group", "Life", "Retirement", "6311"),
    ("EQH", "0001333986", "Equitable Holdings", "Life", "Life & Annuities", "6311"),
    ("UNM", "0000005513", "Unum Group", "Life", "Disability & Benefits", "6311"),
    ("GL", "0000320335", "Globe Life", "Life", "Life & Annuities", "6311"),
    ("LNC", "0000059558", "Lincoln National", "Life", "Life & Annuities", "6311"),
    ("JXN", "0001822993", "Jackson Financial", "Life", "Annuities", "6311"),
    ("VOYA", "0001535929", "Voya Financial", "Life", "Retirement", "6311"),
    ("GNW", "0001276520", "Genworth Financial", "Life", "LTC / Mortgage Insurance", "6311"),
    ("CNO", "0001224608", "CNO Financial Group", "Life", "Life & Health", "6311"),
    ("PRI", "0001475922", "Primerica", "Life", "Life Insurance", "6311"),
    ("FG", "0001934850", "F&G Annuities & Life", "Life", "Life & Annuities", "6311"),
    ("UNH", "0000731766", "UnitedHealth Group", "Health", "Managed Care", "6324"),
    ("CI", "0001739940", "Cigna Group", "Health", "Managed Care", "6324"),
    ("ELV", "0001156039", "Elevance Health", "Health", "Managed Care", "6324"),
    ("HUM", "0000049071", "Humana", "Health", "Medicare Advantage", "6324"),
    ("CNC", "0001071739", "Centene Corporation", "Health", "Medicaid", "6324"),
    ("MOH", "0001179929", "Molina Healthcare", "Health", "Medicaid", "6324"),
    ("CVS", "0000064803", "CVS Health", "Health", "Integrated Health", "6324"),
    ("OSCR", "0001568651", "Oscar Health", "Health", "Managed Care", "6324"),
    ("BRK.B", "0001067983", "Berkshire Hathaway", "Reinsurance", "Diversified", "6331"),
    ("RNR", "0000913144", "RenaissanceRe Holdings", "Reinsurance", "Property Cat", "6399"),
    ("EG", "0001095073", "Everest Group", "Reinsurance", "Diversified", "6399"),
    ("RGA", "0000898174", "Reinsurance Group of America", "Reinsurance", "Life Reinsurance", "6311"),
    ("SPNT", "0001576018", "SiriusPoint", "Reinsurance", "Multi-line", "6399"),
    ("HG", "0001593275", "Hamilton Insurance Group", "Reinsurance", "Specialty", "6399"),
    ("AXS", "0001214816", "AXIS Capital Holdings", "Reinsurance", "Specialty", "6399"),
    ("MMC", "0000062709", "Marsh & McLennan", "Brokers", "Brokerage", "6411"),
    ("AON", "0000315293", "Aon plc", "Brokers", "Brokerage", "6411"),
    ("AJG", "0000354190", "Arthur J. Gallagher", "Brokers", "Brokerage", "6411"),
    ("WTW", "0001140536", "Willis Towers Watson", "Brokers", "Brokerage", "6411"),
    ("BRO", "0000079282", "Brown & Brown", "Brokers", "Brokerage", "6411"),
    ("RYAN", "0001849253", "Ryan Specialty Holdings", "Brokers", "Specialty Brokerage", "6411"),
    ("GSHD", "0001726978", "Goosehead Insurance", "Brokers", "Distribution", "6411"),
    ("BRP", "0001781755", "Baldwin Insurance Group", "Brokers", "Distribution", "6411"),
    ("FNF", "0001331875", "Fidelity National Financial", "Title", "Title Insurance", "6361"),
    ("FAF", "0001472787", "First American Financial", "Title", "Title Insurance", "6361"),
    ("STC", "0000094344", "Stewart Information Services", "Title", "Title Insurance", "6361"),
    ("MTG", "0000876437", "MGIC Investment", "Mortgage Insurance", "Mortgage Insurance", "6351"),
    ("RDN", "0000890926", "Radian Group", "Mortgage Insurance", "Mortgage Insurance", "6351"),
    ("ESNT", "0001448893", "Essent Group", "Mortgage Insurance", "Mortgage Insurance", "6351"),
    ("NMIH", "0001547903", "NMI Holdings", "Mortgage Insurance", "Mortgage Insurance", "6351"),
]


def seed_companies() -> list[CompanyRecord]:
    """Build CompanyRecords for every seeded company."""
    return [
        CompanyRecord(
            id=ticker,
            cik=cik,
            ticker=ticker,
            name=name,
            segment=Segment(segment),
            sub_segment=sub_segment,
            sic_code=sic,
        )
        for ticker, cik, name, segment, sub_segment, sic in _SEED_ROWS
    ]
