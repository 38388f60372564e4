"""
Stream BCG Survey Planning
Code last updated: 10/16/2026
Script purpose: summarize recent BCG scores by HUC8 and pick watersheds for the next survey

Each site contributes only its most recent site-year, and only if that year is after the cutoff in config
(2000). Those readings are averaged per HUC8; the rounded mean is the watershed's BCG class. The summary is
joined onto the HUC8 polygons so unsampled watersheds show up too, and the polygons that intersect a survey
area are listed with a priority flag.
"""

import numpy as np
import pandas as pd
import geopandas as gpd
# local
from bcg_pipeline import config
from bcg_pipeline.sample_loading import normalize_huc


def select_most_recent(yearly):
    """
    One row per site: the row with the latest Year.

    Ties on the latest year go to the first such row in the input, so nothing is ever averaged across years.
    """
    site, year = config.site_id_col, config.year_col
    if yearly.empty:
        return yearly.copy()
    latest_idx = yearly.groupby(site, sort=True)[year].idxmax()
    return yearly.loc[latest_idx.values].reset_index(drop=True)


def restrict_after_cutoff(df, cutoff=None):
    """Keep rows with Year strictly greater than the cutoff (default config.recent_year_cutoff)."""
    if cutoff is None:
        cutoff = config.recent_year_cutoff
    return df[df[config.year_col] > cutoff].reset_index(drop=True)


def classify_bcg(mean_scores):
    """Round mean BCG scores to the nearest whole class, halves rounded up (2.5 -> 3, 3.5 -> 4)."""
    scores = pd.Series(mean_scores, dtype=float)
    return np.floor(scores + 0.5).astype('Int64')


def summarize_by_huc(recent, huc_col=None):
    """
    Per-HUC8 summary of site readings: BCG_mean, n_sites, BCG_class, year_min, year_max.

    Sites without a HUC8 code can't be placed in a watershed and are left out.
    """
    if huc_col is None:
        huc_col = config.huc8_col
    located = recent.dropna(subset=[huc_col])
    summary = (
        located.groupby(huc_col, sort=True)
        .agg(
            BCG_mean=('BCG_mean', 'mean'),
            n_sites=('BCG_mean', 'count'),
            year_min=(config.year_col, 'min'),
            year_max=(config.year_col, 'max'),
        )
        .reset_index()
    )
    summary['BCG_class'] = classify_bcg(summary['BCG_mean']).values
    return summary[[huc_col, 'BCG_mean', 'n_sites', 'BCG_class', 'year_min', 'year_max']]


def summarize_watersheds(yearly, cutoff=None, logger=None):
    """Most recent site-year per site -> after-cutoff rows -> HUC8 summary. Returns (summary, recent site rows)."""
    log = config.get_log_function(logger)
    if cutoff is None:
        cutoff = config.recent_year_cutoff

    # A site-year without a mean can't stand in for the site's current condition
    no_mean = yearly['BCG_mean'].isna()
    if no_mean.any():
        log(f'WARNING: {int(no_mean.sum())} site-years have no BCG_mean and are ignored.')
    latest = select_most_recent(yearly[~no_mean])
    recent = restrict_after_cutoff(latest, cutoff=cutoff)
    summary = summarize_by_huc(recent)

    n_no_huc = int(recent[config.huc8_col].isna().sum())
    if n_no_huc > 0:
        log(f'WARNING: {n_no_huc} recent sites have no HUC8 code and are not in the watershed summary.')
    log(f"{len(latest):,} sites; {len(recent):,} with a most recent sample after {cutoff}; "
        f"{len(summary):,} HUC8 units summarized.")
    return summary, recent


def add_region_names(summary, huc4_names, huc4_name_col='HUC4_name'):
    """
    Label each HUC8 with the name of its HUC4 region.

    `huc4_names` needs a HUC4 column (codes are zero-padded here) and one name column, given by `huc4_name_col`.
    """
    names = huc4_names[[config.huc4_col, huc4_name_col]].copy()
    names[config.huc4_col] = normalize_huc(names[config.huc4_col], width=4).values
    names = names.drop_duplicates(subset=config.huc4_col, keep='first')

    out = summary.copy()
    out[config.huc4_col] = out[config.huc8_col].str[:4]
    return pd.merge(out, names, on=config.huc4_col, how='left')


def assign_huc8_by_location(sites, huc_gdf, huc_field=None):
    """
    Fill missing HUC8 codes from the polygon each site falls within.

    Codes already on a site are left alone. Sites on a shared boundary take the first matching polygon.
    """
    if huc_field is None:
        huc_field = config.huc_boundary_field
    out = sites.copy()
    if config.huc8_col not in out.columns:
        out[config.huc8_col] = np.nan
    out[config.huc8_col] = out[config.huc8_col].astype(object)

    missing = out[config.huc8_col].isna()
    if not missing.any():
        return out

    points = gpd.GeoDataFrame(
        out.loc[missing, [config.lon_col, config.lat_col]],
        geometry=gpd.points_from_xy(out.loc[missing, config.lon_col], out.loc[missing, config.lat_col]),
        crs="EPSG:4269"
    )
    polygons = huc_gdf[[huc_field, 'geometry']].to_crs(points.crs)
    joined = gpd.sjoin(points, polygons, predicate='within', how='left')
    joined = joined[~joined.index.duplicated(keep='first')]

    codes = joined.loc[out.index[missing], huc_field]
    out.loc[missing, config.huc8_col] = normalize_huc(codes, width=8).values
    return out


def join_huc_geometry(summary, huc_gdf, huc_field=None):
    """
    Attach the summary to every HUC8 polygon; units without recent sites get n_sites = 0 and NaN scores.

    The result keys on the summary's HUC8 column name.
    """
    if huc_field is None:
        huc_field = config.huc_boundary_field
    polygons = huc_gdf.copy()
    polygons[config.huc8_col] = polygons[huc_field].astype(str).str.zfill(8)
    if huc_field != config.huc8_col:
        polygons = polygons.drop(columns=[huc_field])

    merged = polygons.merge(summary, on=config.huc8_col, how='left')
    merged['n_sites'] = merged['n_sites'].fillna(0).astype(int)
    return gpd.GeoDataFrame(merged, geometry='geometry', crs=huc_gdf.crs)


def select_survey_hucs(huc_summary_gdf, survey_area, priority_class=None):
    """
    HUC8 units that intersect the survey area, each listed once.

    survey_priority is True for units with no recent sites or a BCG_class at or above `priority_class`.
    """
    if priority_class is None:
        priority_class = config.survey_priority_class
    area = survey_area[['geometry']].to_crs(huc_summary_gdf.crs)
    hits = gpd.sjoin(huc_summary_gdf, area, predicate='intersects', how='inner')
    hits = hits[~hits.index.duplicated(keep='first')].drop(columns=['index_right'], errors='ignore')

    no_sites = hits['n_sites'] == 0
    degraded = hits['BCG_class'].fillna(0).astype(int) >= priority_class
    hits['survey_priority'] = no_sites | degraded
    return hits.sort_values(config.huc8_col).reset_index(drop=True)
