"""
Stream BCG Survey Planning
Code last updated: 10/16/2026
Script purpose: load the merged multi-agency BCG sample table

Reads the merged spreadsheet (or a csv export of it), maps each agency's column names onto one set of
names (see config.column_aliases), parses collection dates into Year/Month/Day, and zero-pads HUC codes
that lost their leading zeros on the way through Excel. Rows without coordinates, a score, or a usable date can't be
placed in a site-year, so they are dropped here and counted in the log.
"""

import numpy as np
import pandas as pd
from pathlib import Path
# local
from bcg_pipeline import config


def normalize_huc(codes, width=8):
    """Zero-pad HUC codes stored as numbers (e.g. 2070010.0 -> '02070010'); missing codes stay NaN."""
    codes = pd.Series(codes)
    as_text = codes.astype('string').str.strip().str.replace(r'\.0$', '', regex=True)
    as_text = as_text.where(as_text.notna() & (as_text != '') & (as_text.str.lower() != 'nan'))
    padded = as_text.str.zfill(width)
    return padded.astype(object).where(padded.notna(), np.nan)


def read_sample_table(path):
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sample table not found: {path}")
    suffix = path.suffix.lower()
    if suffix == '.xls':
        raise ValueError(f"{path.name} is a legacy .xls workbook; save it as .xlsx or .csv first.")
    if suffix == '.xlsx':
        return pd.read_excel(path, engine='openpyxl')
    return pd.read_csv(path, low_memory=False)


def _parse_collection_dates(df):
    """
    Fill Date and Year/Month/Day from whichever of them the table carries.

    Year/Month/Day given by the agency are kept as is; Date is built from them when absent. Parts that are
    missing (whole columns or single cells) are derived from Date. Rows left without a date come back as NaT.
    """
    year, month, day, date = config.year_col, config.month_col, config.day_col, config.date_col
    part_cols = [year, month, day]
    for col in part_cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors='coerce')

    parsed = pd.to_datetime(df[date], errors='coerce') if date in df.columns else None
    if all(col in df.columns for col in part_cols):
        built = pd.to_datetime(df[part_cols].rename(columns={year: 'year', month: 'month', day: 'day'}),
                               errors='coerce')
        df[date] = built if parsed is None else parsed.fillna(built)
    else:
        df[date] = parsed

    for col, part in zip(part_cols, ['year', 'month', 'day']):
        derived = getattr(df[date].dt, part)
        df[col] = df[col].fillna(derived) if col in df.columns else derived
    return df


def standardize_samples(df, logger=None):
    """
    Canonicalise a raw sample table.

    The table needs coordinates, agency and score, plus either a Date column or all of Year/Month/Day.
    Returns the cleaned table and a dict of drop counts. Raises ValueError when a required column is missing
    or the score column can't be read as numbers.
    """
    log = config.get_log_function(logger)
    df = df.rename(columns={k: v for k, v in config.column_aliases.items() if k in df.columns and v not in df.columns})

    missing = [c for c in config.required_columns if c not in df.columns]
    has_parts = all(c in df.columns for c in config.date_part_columns)
    if config.date_col not in df.columns and not has_parts:
        missing.append(f"{config.date_col} (or {'/'.join(config.date_part_columns)})")
    if missing:
        raise ValueError(f"Sample table is missing required columns: {missing}")

    df = df.copy()
    n_input = len(df)

    # Scores must be numeric; blanks are dropped below but text is an error
    scores = pd.to_numeric(df[config.score_col], errors='coerce')
    bad_scores = scores.isna() & df[config.score_col].notna()
    if bad_scores.any():
        raise ValueError(f"{bad_scores.sum()} values in {config.score_col} are not numeric, "
                         f"e.g. {df.loc[bad_scores, config.score_col].iloc[0]!r}")
    df[config.score_col] = scores

    # Records with null coordinates never reach the identifier step
    no_coords = df[config.lat_col].isna() | df[config.lon_col].isna()
    n_no_coords = int(no_coords.sum())
    if n_no_coords > 0:
        log(f'WARNING: {n_no_coords} records have missing coordinates and will be removed.')
    df = df[~no_coords].copy()

    no_score = df[config.score_col].isna()
    n_no_score = int(no_score.sum())
    if n_no_score > 0:
        log(f'WARNING: {n_no_score} records have no {config.score_col} value and will be removed.')
    df = df[~no_score].copy()

    df = _parse_collection_dates(df)
    no_date = df[config.date_col].isna()
    n_no_date = int(no_date.sum())
    if n_no_date > 0:
        log(f'WARNING: {n_no_date} records have an unparseable collection date and will be removed.')
    df = df[~no_date].copy()

    for col in config.date_part_columns:
        df[col] = df[col].astype(int)

    df[config.agency_col] = df[config.agency_col].fillna('Unknown').astype(str).str.strip()

    if config.huc8_col in df.columns:
        df[config.huc8_col] = normalize_huc(df[config.huc8_col], width=8).values
        df[config.huc4_col] = df[config.huc8_col].str[:4]

    df = df.reset_index(drop=True)
    drops = {
        'input_rows': n_input,
        'missing_coordinates': n_no_coords,
        'missing_score': n_no_score,
        'unparseable_date': n_no_date,
        'kept_rows': len(df),
    }
    log(f"Loaded {n_input:,} records; kept {len(df):,} "
        f"(dropped {n_no_coords} without coordinates, {n_no_score} without a score, {n_no_date} without a date).")
    return df, drops


def load_samples(path, logger=None):
    """Read and standardise the merged sample table at `path`."""
    raw = read_sample_table(path)
    return standardize_samples(raw, logger=logger)
