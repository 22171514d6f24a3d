"""
Census table loading.

Turns a statistics-office table keyed by statistic, sex, region and census
year into population records with one row per (county, year).
"""

from __future__ import annotations

import logging
import re
import unicodedata
from pathlib import Path
from typing import Iterable, Mapping

import numpy as np
import pandas as pd

from censuscartogram.errors import CensusDataError

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[^\W\d_]+('[^\W\d_]+)?")
_PREFIX = re.compile(r"^(co\.?|county)\s+", re.IGNORECASE)
_YEAR = re.compile(r"\d{4}")


def _strip_accents(name: str) -> str:
    decomposed = unicodedata.normalize("NFKD", name)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def _basic_normalize(name: str) -> str:
    name = " ".join(_strip_accents(str(name)).split())
    name = _PREFIX.sub("", name)
    return _WORD.sub(lambda m: m.group(0).capitalize(), name)


def normalize_region_name(name: str, aliases: Mapping[str, str] | None = None) -> str:
    """
    Normalize a county name so that both data sources agree on it.

    Whitespace is collapsed, accents are stripped, a leading ``Co.`` or
    ``County`` is dropped and every word is capitalized. If the result
    matches one of the aliases (compared after the same normalization) the
    alias target is returned instead.

    Examples
    --------
    >>> normalize_region_name("  CO. DÚN   LAOGHAIRE-RATHDOWN ")
    'Dun Laoghaire-Rathdown'
    >>> normalize_region_name("Leix", {"Leix": "Laois"})
    'Laois'
    """
    normalized = _basic_normalize(name)
    if aliases:
        lookup = {_basic_normalize(k): _basic_normalize(v) for k, v in aliases.items()}
        normalized = lookup.get(normalized, normalized)
    return normalized


def normalize_region_names(
    names: Iterable[str],
    aliases: Mapping[str, str] | None = None,
) -> list[str]:
    """Vectorized normalize_region_name."""
    lookup = {_basic_normalize(k): _basic_normalize(v) for k, v in (aliases or {}).items()}
    normalized = [_basic_normalize(n) for n in names]
    return [lookup.get(n, n) for n in normalized]


def year_from_label(label) -> int:
    """
    Extract the census year from a year label such as ``"1926"`` or
    ``"1979 (April)"``.

    Raises
    ------
    CensusDataError
        If the label contains no four-digit year.
    """
    match = _YEAR.search(str(label))
    if match is None:
        raise CensusDataError(f"Cannot read a year from label {label!r}")
    return int(match.group(0))


def read_census_table(path: str | Path) -> pd.DataFrame:
    """
    Read a census table from CSV or Excel, chosen by file suffix.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Census table not found: {path}")
    if path.suffix.lower() in (".xls", ".xlsx"):
        table = pd.read_excel(path)
    else:
        table = pd.read_csv(path, encoding="utf-8-sig")
    logger.info("Read %d rows from %s", len(table), path)
    return table


def prepare_population(
    table: pd.DataFrame,
    columns: Mapping[str, str],
    years: Iterable,
    statistic: str | None = None,
    sex: str | None = None,
    exclude_regions: Iterable[str] = (),
    aliases: Mapping[str, str] | None = None,
    unit_scale: float = 1.0,
) -> pd.DataFrame:
    """
    Filter and reshape a census table into population records.

    Parameters
    ----------
    table : pandas.DataFrame
        Raw census table.
    columns : dict
        Maps the roles 'region', 'year', 'value' and, if filtering by them,
        'statistic' and 'sex' to column names of table.
    years : iterable
        Census year labels to keep, as they appear in the table.
    statistic, sex : str, optional
        Values to select in the statistic and sex columns.
    exclude_regions : iterable of str
        Regions to drop (aggregates, subdivisions). Compared after name
        normalization, before aliases are applied.
    aliases : dict, optional
        Spelling aliases applied after the exclusion.
    unit_scale : float, optional
        Population counts are divided by this factor (default: 1).

    Returns
    -------
    pandas.DataFrame
        Columns ``county``, ``year``, ``year_label``, ``population_count``
        and ``population`` (count / unit_scale), sorted by year and county,
        with one row per (county, year).

    Raises
    ------
    CensusDataError
        On missing columns, unknown year labels, empty selections,
        duplicate or invalid values.
    """
    if unit_scale <= 0:
        raise CensusDataError(f"unit_scale must be positive, got {unit_scale}")

    required = ["region", "year", "value"]
    if statistic is not None:
        required.append("statistic")
    if sex is not None:
        required.append("sex")
    missing_roles = [role for role in required if role not in columns]
    if missing_roles:
        raise CensusDataError(f"No column configured for {missing_roles}")
    missing_cols = [columns[role] for role in required if columns[role] not in table.columns]
    if missing_cols:
        raise CensusDataError(
            f"Census table has no column(s) {missing_cols}; "
            f"available: {list(table.columns)}"
        )

    df = table
    if statistic is not None:
        df = df[df[columns["statistic"]].astype(str).str.strip() == statistic]
    if sex is not None:
        df = df[df[columns["sex"]].astype(str).str.strip() == sex]
    if df.empty:
        raise CensusDataError(
            f"No rows left after selecting statistic={statistic!r}, sex={sex!r}"
        )

    year_labels = [str(y).strip() for y in years]
    available = set(df[columns["year"]].astype(str).str.strip())
    unknown = [y for y in year_labels if y not in available]
    if unknown:
        raise CensusDataError(f"Year label(s) {unknown} not found in census table")

    df = pd.DataFrame({
        "raw_name": df[columns["region"]].astype(str).to_numpy(),
        "year_label": df[columns["year"]].astype(str).str.strip().to_numpy(),
        "population_count": pd.to_numeric(df[columns["value"]], errors="coerce").to_numpy(),
    })
    df = df[df["year_label"].isin(year_labels)]

    names = normalize_region_names(df["raw_name"])
    excluded = set(normalize_region_names(exclude_regions))
    keep = np.array([n not in excluded for n in names], dtype=bool)
    logger.debug("Dropping %d rows of excluded regions", int((~keep).sum()))
    df = df[keep].copy()
    df["county"] = normalize_region_names(df["raw_name"], aliases)

    if df.empty:
        raise CensusDataError("No census rows left after excluding regions")

    bad = df[df["population_count"].isna() | (df["population_count"] < 0)]
    if not bad.empty:
        examples = bad[["county", "year_label"]].head(5).values.tolist()
        raise CensusDataError(
            f"{len(bad)} census value(s) are missing, non-numeric or negative, "
            f"e.g. {examples}"
        )

    duplicated = df.duplicated(subset=["county", "year_label"], keep=False)
    if duplicated.any():
        examples = sorted(set(map(tuple, df.loc[duplicated, ["county", "year_label"]].values.tolist())))
        raise CensusDataError(
            f"More than one row per (county, year): {examples[:5]}"
        )

    df["year"] = [year_from_label(label) for label in df["year_label"]]
    if df.drop_duplicates("year_label")["year"].duplicated().any():
        raise CensusDataError("Two year labels map to the same census year")
    df["population"] = df["population_count"] / float(unit_scale)

    df = df.sort_values(["year", "county"]).reset_index(drop=True)
    logger.info(
        "Prepared %d population records for %d counties and %d census years",
        len(df), df["county"].nunique(), df["year"].nunique(),
    )
    return df[["county", "year", "year_label", "population_count", "population"]]


def load_population(config) -> pd.DataFrame:
    """
    Read and prepare the census table described by a CartogramConfig.
    """
    census = config.census
    return prepare_population(
        read_census_table(config.census_path),
        columns=census["columns"],
        years=census["years"],
        statistic=census.get("statistic"),
        sex=census.get("sex"),
        exclude_regions=census.get("exclude_regions") or (),
        aliases=config.aliases("census"),
        unit_scale=float(census.get("unit_scale", 1)),
    )
