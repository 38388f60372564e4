import matplotlib
matplotlib.use('Agg')

import pandas as pd
import geopandas as gpd
import pytest
from shapely.geometry import box

from bcg_pipeline.sample_loading import standardize_samples


@pytest.fixture
def raw_samples():
    # X: three 2019 visits by one agency, one of them in January
    # Y: same day, two agencies
    # Z: one visit in each of two years
    # W: a single visit before the cutoff year
    return pd.DataFrame({
        'Latitude': [40.0, 40.0, 41.0, 40.0, 41.0, 40.5, 40.5, 39.5],
        'Longitude': [-75.0, -75.0, -76.0, -75.0, -76.0, -75.5, -75.5, -74.5],
        'Agency': ['PA', 'PA', 'PA', 'PA', 'NY', 'NJ', 'NJ', 'NJ'],
        'Date': ['2019-06-10', '2019-07-15', '2015-05-01', '2019-01-20',
                 '2015-05-01', '2010-08-01', '2018-08-01', '1998-06-01'],
        'BCG_proxy': [2.0, 4.0, 3.0, 5.0, 3.5, 2.0, 3.0, 1.0],
        'HUC8': [2040202, 2040202, 2050306, 2040202, 2050306, 2040105, 2040105, 2040202],
        'COMID': [101, 101, 202, 101, 202, 303, 303, 404],
    })


@pytest.fixture
def samples(raw_samples):
    df, _ = standardize_samples(raw_samples)
    return df


@pytest.fixture
def huc_gdf():
    return gpd.GeoDataFrame(
        {
            'huc8': ['02040202', '02050306', '02040203'],
            'name': ['Crosswicks-Neshaminy', 'Lower Susquehanna-Penns', 'Mullica-Toms'],
        },
        geometry=[
            box(-75.2, 39.8, -74.8, 40.2),
            box(-76.2, 40.8, -75.8, 41.2),
            box(-74.2, 39.0, -73.8, 39.4),
        ],
        crs="EPSG:4269",
    )
