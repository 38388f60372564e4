"""
Stream BCG Survey Planning
Code last updated: 10/16/2026
Script purpose: site identifiers, multi-sampling flags, winter filter, and site-year averaging

Several agencies sample the same reaches, sometimes more than once a year, sometimes on the same day.
The functions here give every sample a site identifier (exact coordinate match) and a site-agency identifier,
count how often each site was sampled at four time granularities (whole record, year, month, date), flag
multi-sampling (and multi-sampling by a single agency), and then collapse the non-winter samples to one
row per site-year.

Flags are computed on the full dataset, before the winter filter, so a January visit still counts toward a
site's multi-sampling history. The yearly table only averages the non-winter samples.

Every function returns a new DataFrame; inputs are never modified.
"""

import pandas as pd
# local
from bcg_pipeline import config

# (count column, flag column, same-agency flag column) for each time granularity
FLAG_LEVELS = [
    ('n_samples_yr', 'multi_sample_yr', 'multi_sample_yr_same_agency'),
    ('n_samples_moyr', 'multi_sample_mo', 'multi_sample_mo_same_agency'),
    ('n_samples_date', 'multi_sample_date', 'multi_sample_date_same_agency'),
]
FLAG_COLUMNS = [c for _, flag, same in FLAG_LEVELS for c in (flag, same)]


def _sequential_ids(keys):
    # Integer ids in order of first appearance; depends on input row order
    ids = {}
    return [ids.setdefault(key, len(ids) + 1) for key in keys]


def assign_site_ids(df):
    """
    Add SiteID (one per exact latitude/longitude pair) and SiteAgencyID (one per coordinate pair and agency).

    Ids start at 1 and follow the order in which each key first appears, so the same table in the same order
    always gets the same ids. Raises ValueError if any record has a null coordinate.
    """
    lat, lon, agency = config.lat_col, config.lon_col, config.agency_col
    null_coords = df[lat].isna() | df[lon].isna()
    if null_coords.any():
        raise ValueError(f"{int(null_coords.sum())} records have null coordinates; "
                         f"drop them before assigning site identifiers.")

    out = df.copy()
    out[config.site_id_col] = _sequential_ids(zip(out[lat], out[lon]))
    out[config.site_agency_id_col] = _sequential_ids(zip(out[lat], out[lon], out[agency]))
    return out


def derive_flags(n_samples_yr, n_samples_moyr, n_samples_date, n_agencies):
    """
    Turn group counts into the six multi-sampling flags.

    A flag is set when its group has more than one record; the same-agency variant additionally needs the
    site to have been sampled by exactly one agency. Unset flags are False, never missing.
    """
    counts = {
        'n_samples_yr': pd.Series(n_samples_yr),
        'n_samples_moyr': pd.Series(n_samples_moyr),
        'n_samples_date': pd.Series(n_samples_date),
    }
    single_agency = pd.Series(n_agencies).fillna(0).eq(1)

    flags = pd.DataFrame(index=counts['n_samples_yr'].index)
    for count_col, flag_col, same_col in FLAG_LEVELS:
        multi = counts[count_col].fillna(0).gt(1)
        flags[flag_col] = multi.astype(bool)
        flags[same_col] = (multi & single_agency).astype(bool)
    return flags[FLAG_COLUMNS]


def compute_sampling_flags(df):
    """
    Add group counts, the within-year score range, the site's agency count, and the six flags.

    Expects SiteID plus Year/Month/Day columns (see assign_site_ids and sample_loading).
    """
    site, year, month, day = config.site_id_col, config.year_col, config.month_col, config.day_col
    score, agency = config.score_col, config.agency_col

    out = df.copy()
    granularities = {
        'n_samples_site': [site],
        'n_samples_yr': [site, year],
        'n_samples_moyr': [site, year, month],
        'n_samples_date': [site, year, month, day],
    }
    for count_col, keys in granularities.items():
        out[count_col] = out.groupby(keys)[config.lat_col].transform('count').astype(int)

    site_year = out.groupby([site, year])[score]
    out['BCG_annual_range'] = site_year.transform('max') - site_year.transform('min')

    out['n_agencies'] = out.groupby(site)[agency].transform('nunique').astype(int)

    flags = derive_flags(out['n_samples_yr'], out['n_samples_moyr'], out['n_samples_date'], out['n_agencies'])
    for col in FLAG_COLUMNS:
        out[col] = flags[col]
    return out


def filter_season(df, excluded_months=None):
    """Drop samples from the excluded months (default: Dec, Jan, Feb); rows are ordered by SiteID, then input order."""
    if excluded_months is None:
        excluded_months = config.winter_months
    kept = df[~df[config.month_col].isin(excluded_months)]
    return kept.sort_values(config.site_id_col, kind='mergesort').copy()


def find_diverging_attributes(df, columns=None):
    """Return {column: [SiteIDs]} for static site attributes that take more than one value within a site."""
    if columns is None:
        columns = config.static_site_columns
    columns = [c for c in columns if c in df.columns]

    diverging = {}
    for col in columns:
        n_values = df.groupby(config.site_id_col)[col].nunique(dropna=False)
        sites = n_values[n_values > 1].index.tolist()
        if sites:
            diverging[col] = sites
    return diverging


def aggregate_yearly(df, logger=None):
    """
    Collapse samples to one row per (SiteID, Year).

    Output columns: SiteID, Year, the static site attributes, BCG_mean, n_samples, BCG_min, BCG_max, BCG_range,
    and, when the input carries them, n_agencies and n_samples_yr_all (site-year count before the winter filter).

    Static attributes come from the first record of each site in the input. If they disagree within a site the
    first value still wins, and a warning naming the column and site count is logged.

    Returns (yearly DataFrame, diagnostics dict).
    """
    log = config.get_log_function(logger)
    site, year, score = config.site_id_col, config.year_col, config.score_col

    diverging = find_diverging_attributes(df)
    for col, sites in diverging.items():
        log(f'WARNING: {col} differs within {len(sites)} site(s); keeping the first value. SiteIDs: {sites[:10]}')

    stats = (
        df.groupby([site, year], sort=True)[score]
        .agg(BCG_mean='mean', n_samples='count', BCG_min='min', BCG_max='max')
        .reset_index()
    )
    stats['BCG_range'] = stats['BCG_max'] - stats['BCG_min']
    stats.loc[stats['BCG_max'] == stats['BCG_min'], 'BCG_range'] = 0.0

    carried = [c for c in config.static_site_columns + ['n_agencies'] if c in df.columns]
    static = df.drop_duplicates(subset=site, keep='first')[[site] + carried]
    yearly = pd.merge(stats, static, on=site, how='left')

    if 'n_samples_yr' in df.columns:
        pre_filter = (
            df.drop_duplicates(subset=[site, year], keep='first')[[site, year, 'n_samples_yr']]
            .rename(columns={'n_samples_yr': 'n_samples_yr_all'})
        )
        yearly = pd.merge(yearly, pre_filter, on=[site, year], how='left')

    ordered = [site, year] + carried + ['BCG_mean', 'n_samples', 'BCG_min', 'BCG_max', 'BCG_range']
    ordered += [c for c in yearly.columns if c not in ordered]
    yearly = yearly[ordered]

    diagnostics = {
        'input_rows': len(df),
        'site_years': len(yearly),
        'diverging_attributes': diverging,
    }
    return yearly, diagnostics


def clean_samples(df, excluded_months=None, logger=None):
    """
    Run identifiers -> flags -> winter filter -> yearly averaging on a standardised sample table.

    Returns (flagged samples, yearly table, diagnostics).
    """
    log = config.get_log_function(logger)

    identified = assign_site_ids(df)
    flagged = compute_sampling_flags(identified)
    in_season = filter_season(flagged, excluded_months=excluded_months)
    yearly, yearly_diag = aggregate_yearly(in_season, logger=logger)

    n_winter = len(flagged) - len(in_season)
    diagnostics = {
        'records': len(flagged),
        'sites': int(flagged[config.site_id_col].nunique()),
        'site_agencies': int(flagged[config.site_agency_id_col].nunique()),
        'multi_agency_sites': int(flagged.loc[flagged['n_agencies'] > 1, config.site_id_col].nunique()),
        'winter_records_removed': n_winter,
        'site_years': yearly_diag['site_years'],
        'diverging_attributes': yearly_diag['diverging_attributes'],
    }
    for flag_col in FLAG_COLUMNS:
        diagnostics[flag_col] = int(flagged[flag_col].sum())

    log(f"{diagnostics['records']:,} records at {diagnostics['sites']:,} sites "
        f"({diagnostics['multi_agency_sites']:,} sampled by more than one agency).")
    log(f"Removed {n_winter:,} winter records (months {sorted(excluded_months or config.winter_months)}); "
        f"{len(yearly):,} site-years remain.")
    return flagged, yearly, diagnostics
