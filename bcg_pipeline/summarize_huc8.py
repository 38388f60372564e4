"""
Stream BCG Survey Planning
Code last updated: 10/16/2026
Script purpose: stage two - summarize cleaned BCG site-years by HUC8 and map them

Reads the yearly table written by clean_bcg_samples.py, keeps each site's most recent site-year after the
cutoff year in config, averages by HUC8, joins the result to the HUC8 boundaries, and writes the summary
table, the joined polygons, the list of HUC8s in the survey area, and the maps.

Run with:  python -m bcg_pipeline.summarize_huc8 [--yearly FILE] [--huc8 FILE] [--survey-area FILE] [--no-basemap]
"""

import argparse
import pandas as pd
import geopandas as gpd
import matplotlib.pyplot as plt
from pathlib import Path
# local
from bcg_pipeline import config
from bcg_pipeline.config import MyLogger
from bcg_pipeline.sample_loading import normalize_huc
from bcg_pipeline.watershed_summary import (
    summarize_watersheds,
    add_region_names,
    assign_huc8_by_location,
    join_huc_geometry,
    select_survey_hucs,
)
from bcg_pipeline.bcg_maps import plot_huc8_map, plot_score_distributions, make_interactive_map


def load_yearly(path):
    """Read the yearly table with HUC codes kept as zero-padded text."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Yearly table not found: {path}. Run clean_bcg_samples.py first.")
    yearly = pd.read_csv(path, dtype={config.huc8_col: str, config.huc4_col: str})
    if config.huc8_col in yearly.columns:
        yearly[config.huc8_col] = normalize_huc(yearly[config.huc8_col], width=8).values
    return yearly


def read_boundaries(path, label):
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{label} not found: {path}")
    return gpd.read_file(path)


def run_stage_two(yearly, huc_gdf, huc4_names=None, survey_area=None, cutoff=None, logger=None):
    """
    Build the HUC8 summary and its polygons from a yearly table.

    Returns a dict with 'summary', 'recent' (contributing site rows), 'huc_gdf' (all polygons with summary
    columns) and 'survey_hucs' (None without a survey area).
    """
    log = config.get_log_function(logger)

    n_missing_before = int(yearly[config.huc8_col].isna().sum()) if config.huc8_col in yearly.columns else len(yearly)
    yearly = assign_huc8_by_location(yearly, huc_gdf)
    n_missing_after = int(yearly[config.huc8_col].isna().sum())
    if n_missing_before > 0:
        log(f'Filled HUC8 from site location for {n_missing_before - n_missing_after} of '
            f'{n_missing_before} site-years without a code.')

    summary, recent = summarize_watersheds(yearly, cutoff=cutoff, logger=logger)
    if huc4_names is not None:
        summary = add_region_names(summary, huc4_names)

    huc_summary_gdf = join_huc_geometry(summary, huc_gdf)

    survey_hucs = None
    if survey_area is not None:
        survey_hucs = select_survey_hucs(huc_summary_gdf, survey_area)
        log(f"{len(survey_hucs)} HUC8 units intersect the survey area; "
            f"{int(survey_hucs['survey_priority'].sum())} flagged for priority sampling.")

    return {
        'summary': summary,
        'recent': recent,
        'huc_gdf': huc_summary_gdf,
        'survey_hucs': survey_hucs,
    }


def write_stage_two(results, yearly, output_folder, plots_folder, logger, basemap=True):
    output_folder = Path(output_folder)
    plots_folder = Path(plots_folder)
    output_folder.mkdir(parents=True, exist_ok=True)
    plots_folder.mkdir(parents=True, exist_ok=True)

    summary_file = output_folder / config.huc8_summary_filename.name
    results['summary'].to_csv(summary_file, index=False)
    logger.log(f'HUC8 summary saved to: {summary_file}')

    geometry_file = output_folder / config.huc8_geometry_filename.name
    gdf_out = results['huc_gdf'].copy()
    gdf_out['BCG_class'] = gdf_out['BCG_class'].astype('float')
    gdf_out.to_file(geometry_file, layer='huc8_bcg', driver='GPKG')
    logger.log(f'HUC8 polygons saved to: {geometry_file}')

    if results['survey_hucs'] is not None:
        survey_file = output_folder / config.survey_hucs_filename.name
        results['survey_hucs'].drop(columns='geometry').to_csv(survey_file, index=False)
        logger.log(f'Survey HUC8 list saved to: {survey_file}')

    map_file = plots_folder / 'HUC8_BCG_map.png'
    fig = plot_huc8_map(results['huc_gdf'], sites=results['recent'], save_path=map_file, basemap=basemap)
    plt.close(fig)
    fig = plot_score_distributions(yearly, save_path=plots_folder / 'BCG_distributions.png')
    plt.close(fig)
    make_interactive_map(results['huc_gdf'], save_path=plots_folder / config.interactive_map_filename.name)
    logger.log(f'Maps saved to: {plots_folder}')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Summarize cleaned BCG site-years by HUC8.')
    parser.add_argument('--yearly', type=Path, default=config.yearly_filename)
    parser.add_argument('--huc8', type=Path, default=config.huc8_boundaries_filename, help='HUC8 boundary file')
    parser.add_argument('--huc4-names', type=Path, default=config.huc4_names_filename)
    parser.add_argument('--survey-area', type=Path, default=None, help='survey area boundary file')
    parser.add_argument('--cutoff', type=int, default=config.recent_year_cutoff)
    parser.add_argument('--output-folder', type=Path, default=config.output_path)
    parser.add_argument('--plots-folder', type=Path, default=config.plots_path)
    parser.add_argument('--no-basemap', action='store_true', help='skip the web basemap on the static map')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.ensure_directories()

    current_script_name = Path(__file__).stem
    logger = MyLogger(config.log_path / f'log_{current_script_name}.txt')

    yearly = load_yearly(args.yearly)
    huc_gdf = read_boundaries(args.huc8, 'HUC8 boundaries')

    huc4_names = None
    if args.huc4_names.exists():
        huc4_names = pd.read_csv(args.huc4_names, dtype={config.huc4_col: str})
    else:
        logger.log(f'No HUC4 name table at {args.huc4_names}; region names skipped.')

    survey_area = None
    if args.survey_area is not None:
        survey_area = read_boundaries(args.survey_area, 'Survey area')

    results = run_stage_two(yearly, huc_gdf, huc4_names=huc4_names, survey_area=survey_area,
                            cutoff=args.cutoff, logger=logger)
    logger.log(results['summary'].head())
    write_stage_two(results, yearly, args.output_folder, args.plots_folder, logger, basemap=not args.no_basemap)
    logger.end()


if __name__ == '__main__':
    main()
