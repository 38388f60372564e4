"""
Stream BCG Survey Planning
Code last updated: 10/16/2026
Script purpose: set configurations for analysis; used by every other script in repo.

This script has variables and path names that are used throughout the rest of the scripts in this repo.
Most adjustments to the analysis can be made here, including: input/output file names, column names,
the excluded (winter) months, the post-2000 cutoff for the watershed summary, and survey priority settings.
"""

from datetime import datetime
import os
from pathlib import Path

# Get path to config.py and then repo base
CONFIG_DIR = Path(__file__).resolve().parent
BASE_DIR = CONFIG_DIR.parent

# Column names in the merged multi-agency sample table:
lat_col = 'Latitude'
lon_col = 'Longitude'
agency_col = 'Agency'
date_col = 'Date'
year_col = 'Year'
month_col = 'Month'
day_col = 'Day'
score_col = 'BCG_proxy'
huc8_col = 'HUC8'
huc4_col = 'HUC4'

# Alternate spellings used by the contributing agencies -> canonical names above
column_aliases = {
    'Lat': lat_col,
    'LAT': lat_col,
    'Long': lon_col,
    'Lon': lon_col,
    'LONG': lon_col,
    'State': agency_col,
    'Agency_ID': agency_col,
    'CollectionDate': date_col,
    'SampleDate': date_col,
    'BCG_Proxy': score_col,
    'BCGproxy': score_col,
    'HUC_8': huc8_col,
    'huc8': huc8_col,
}
# Either Date or all of Year/Month/Day must be present as well
required_columns = [lat_col, lon_col, agency_col, score_col]
date_part_columns = [year_col, month_col, day_col]

# Attributes that describe the site itself (not the visit); carried into the yearly table
static_site_columns = [lat_col, lon_col, huc8_col, huc4_col, 'COMID', 'REACHCODE', 'StreamOrder', 'TotDASqKM']

# Derived identifiers:
site_id_col = 'SiteID'
site_agency_id_col = 'SiteAgencyID'

# Season filter: meteorological winter is outside the assessment season
winter_months = [12, 1, 2]

# Watershed summary: only each site's most recent reading, and only if after this year
recent_year_cutoff = 2000

# HUC8 polygons: field holding the 8-digit code in the boundary dataset (WBD uses 'huc8')
huc_boundary_field = 'huc8'
huc_region_name_field = 'name'

# Survey planning: units with no recent sites, or a class at/above this, get priority
survey_priority_class = 4

# Key folder paths and file names:
# BCG_ANALYSIS_ROOT lets a run point at a different analysis folder without editing this file
root_folder = Path(os.getenv('BCG_ANALYSIS_ROOT', BASE_DIR / 'analysis'))
data_path = root_folder / 'data'
log_path = root_folder / 'log'
plots_path = root_folder / 'plots'
output_path = root_folder / 'output'

# File paths (as Path objects)
merged_samples_filename = data_path / 'BCG_merged_samples.xlsx'
huc8_boundaries_filename = data_path / 'WBD_HUC8' / 'WBDHU8.shp'
huc4_names_filename = data_path / 'HUC4_names.csv'
survey_area_filename = data_path / 'survey_area.shp'

flagged_samples_filename = output_path / 'bcg_samples_flagged.csv'
yearly_filename = output_path / 'bcg_yearly.csv'
huc8_summary_filename = output_path / 'huc8_summary.csv'
huc8_geometry_filename = output_path / 'huc8_bcg.gpkg'
survey_hucs_filename = output_path / 'survey_hucs.csv'
interactive_map_filename = plots_path / 'huc8_bcg_map.html'


def ensure_directories():
    """Create the analysis subdirectories; called by the stage scripts, not on import."""
    for folder in [data_path, log_path, plots_path, output_path]:
        folder.mkdir(parents=True, exist_ok=True)


# Logging mechanism:
class MyLogger:
    """Prints each message and appends it to a log file, with start and end timestamps."""

    def __init__(self, file_path):
        self.file_path = Path(file_path)
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        self.timestamp_start = datetime.now()
        header_line = f"\nScript output started at {self.timestamp_start.strftime('%Y-%m-%d %H:%M:%S')}\n"
        with self.file_path.open('a') as f:
            f.write(header_line)

    def log(self, *args):
        s = ''.join(str(arg) for arg in args)
        print(s)
        with self.file_path.open('a') as file:
            file.write(s + '\n')

    def end(self):
        timestamp_end = datetime.now()
        elapsed = timestamp_end - self.timestamp_start
        footer = (
            f"\nScript output ended at {timestamp_end.strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"Elapsed time: {str(elapsed)}\n"
        )
        with self.file_path.open('a') as f:
            f.write(footer)


def get_log_function(logger=None):
    """Return logger.log when a MyLogger is given, else print."""
    if logger is None:
        return print
    return logger.log
