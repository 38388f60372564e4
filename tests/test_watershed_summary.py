import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import box

from bcg_pipeline.sample_cleaning import clean_samples
from bcg_pipeline.watershed_summary import (
    select_most_recent,
    restrict_after_cutoff,
    classify_bcg,
    summarize_by_huc,
    summarize_watersheds,
    add_region_names,
    assign_huc8_by_location,
    join_huc_geometry,
    select_survey_hucs,
)


def _yearly(rows):
    return pd.DataFrame(rows, columns=['SiteID', 'HUC8', 'BCG_mean', 'Year'])


def test_most_recent_year_only():
    yearly = _yearly([(1, '00000001', 3.0, 2010), (1, '00000001', 3.0, 2015)])
    summary, recent = summarize_watersheds(yearly)

    assert recent['Year'].tolist() == [2015]
    assert len(summary) == 1
    assert summary['n_sites'].iloc[0] == 1
    assert summary['BCG_mean'].iloc[0] == 3.0


def test_most_recent_tie_keeps_first_row():
    yearly = _yearly([
        (1, '00000001', 2.0, 2012),
        (1, '00000001', 5.0, 2012),
        (2, '00000001', 4.0, 2003),
    ])
    latest = select_most_recent(yearly)

    assert len(latest) == 2
    assert latest.loc[latest['SiteID'] == 1, 'BCG_mean'].iloc[0] == 2.0


def test_cutoff_is_exclusive():
    yearly = _yearly([(1, 'a', 2.0, 2000), (2, 'a', 3.0, 2001)])
    kept = restrict_after_cutoff(yearly, cutoff=2000)

    assert kept['SiteID'].tolist() == [2]


def test_old_site_drops_out_even_if_it_has_no_newer_sample():
    yearly = _yearly([(1, '00000001', 1.0, 1998), (2, '00000001', 4.0, 2020)])
    summary, _ = summarize_watersheds(yearly)

    assert summary['n_sites'].iloc[0] == 1
    assert summary['BCG_mean'].iloc[0] == 4.0


def test_classify_rounds_halves_up():
    classes = classify_bcg([2.5, 3.5, 2.49, 4.51, 1.0, np.nan])

    assert classes.iloc[:5].tolist() == [3, 4, 2, 5, 1]
    assert pd.isna(classes.iloc[5])


def test_summarize_by_huc():
    recent = _yearly([
        (1, '02040202', 3.0, 2019),
        (2, '02040202', 4.0, 2012),
        (3, '02050306', 2.0, 2015),
        (4, np.nan, 5.0, 2016),
    ])
    summary = summarize_by_huc(recent)

    assert summary['HUC8'].tolist() == ['02040202', '02050306']
    assert summary['BCG_mean'].tolist() == [3.5, 2.0]
    assert summary['n_sites'].tolist() == [2, 1]
    assert summary['BCG_class'].tolist() == [4, 2]
    assert summary['year_min'].tolist() == [2012, 2015]
    assert summary['year_max'].tolist() == [2019, 2015]


def test_end_to_end_from_samples(samples):
    _, yearly, _ = clean_samples(samples)
    summary, recent = summarize_watersheds(yearly)

    assert sorted(recent['SiteID'].tolist()) == [1, 2, 3]
    assert summary['HUC8'].tolist() == ['02040105', '02040202', '02050306']
    assert summary['BCG_mean'].tolist() == [3.0, 3.0, 3.25]
    assert summary['BCG_class'].tolist() == [3, 3, 3]


def test_add_region_names():
    summary = pd.DataFrame({'HUC8': ['02040202', '02050306'], 'BCG_mean': [3.0, 2.0]})
    names = pd.DataFrame({'HUC4': [204, 205], 'HUC4_name': ['Delaware', 'Susquehanna']})

    named = add_region_names(summary, names)

    assert named['HUC4'].tolist() == ['0204', '0205']
    assert named['HUC4_name'].tolist() == ['Delaware', 'Susquehanna']


def test_assign_huc8_by_location_fills_missing_only(huc_gdf):
    sites = pd.DataFrame({
        'SiteID': [1, 2, 3],
        'Latitude': [40.0, 41.0, 45.0],
        'Longitude': [-75.0, -76.0, -70.0],
        'HUC8': [np.nan, '99999999', np.nan],
    })
    out = assign_huc8_by_location(sites, huc_gdf)

    assert out['HUC8'].iloc[0] == '02040202'
    assert out['HUC8'].iloc[1] == '99999999'
    assert pd.isna(out['HUC8'].iloc[2])
    assert pd.isna(sites['HUC8'].iloc[0])


def test_join_huc_geometry_keeps_unsampled_units(samples, huc_gdf):
    _, yearly, _ = clean_samples(samples)
    summary, _ = summarize_watersheds(yearly)

    joined = join_huc_geometry(summary, huc_gdf)

    assert isinstance(joined, gpd.GeoDataFrame)
    assert len(joined) == len(huc_gdf)
    by_huc = joined.set_index('HUC8')
    assert by_huc.loc['02040203', 'n_sites'] == 0
    assert pd.isna(by_huc.loc['02040203', 'BCG_mean'])
    assert by_huc.loc['02050306', 'BCG_mean'] == 3.25


def test_select_survey_hucs(samples, huc_gdf):
    _, yearly, _ = clean_samples(samples)
    summary, _ = summarize_watersheds(yearly)
    joined = join_huc_geometry(summary, huc_gdf)
    survey_area = gpd.GeoDataFrame(
        {'zone': ['a', 'b', 'c']},
        geometry=[box(-75.3, 39.7, -74.7, 40.3), box(-75.1, 39.9, -74.9, 40.1), box(-74.3, 38.9, -73.7, 39.5)],
        crs="EPSG:4269",
    )

    hits = select_survey_hucs(joined, survey_area)

    assert hits['HUC8'].tolist() == ['02040202', '02040203']
    assert hits['survey_priority'].tolist() == [False, True]


def test_survey_priority_for_degraded_units(huc_gdf):
    summary = pd.DataFrame({'HUC8': ['02040202'], 'BCG_mean': [4.6], 'n_sites': [3], 'BCG_class': [5]})
    joined = join_huc_geometry(summary, huc_gdf)
    area = gpd.GeoDataFrame(geometry=[box(-75.3, 39.7, -74.7, 40.3)], crs="EPSG:4269")

    hits = select_survey_hucs(joined, area, priority_class=4)

    assert hits['survey_priority'].tolist() == [True]


def test_site_year_without_mean_does_not_hide_older_reading(capsys):
    yearly = _yearly([
        (1, '02040202', 2.0, 2010),
        (1, '02040202', np.nan, 2018),
        (2, '02040202', 4.0, 2015),
    ])
    summary, recent = summarize_watersheds(yearly)

    assert recent.set_index('SiteID')['Year'].to_dict() == {1: 2010, 2: 2015}
    assert summary['BCG_mean'].iloc[0] == 3.0
    assert summary['n_sites'].iloc[0] == 2
    assert summary['year_max'].iloc[0] == 2015
    assert 'WARNING: 1 site-years have no BCG_mean' in capsys.readouterr().out


def test_summarize_by_huc_counts_only_scored_sites():
    recent = _yearly([(1, '02040202', 3.0, 2019), (2, '02040202', np.nan, 2012)])
    summary = summarize_by_huc(recent)

    assert summary['n_sites'].tolist() == [1]
    assert summary['BCG_mean'].tolist() == [3.0]
