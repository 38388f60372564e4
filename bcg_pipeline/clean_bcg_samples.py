"""
Stream BCG Survey Planning
Code last updated: 10/16/2026
Script purpose: stage one - clean the merged multi-agency BCG samples

Loads the merged sample table, assigns site and site-agency identifiers, flags sites that were sampled more
than once in a year/month/day (and whether a single agency did it), drops winter samples, and averages what is
left to one row per site-year. Writes the flagged sample table and the yearly table as csv and xlsx.

Run with:  python -m bcg_pipeline.clean_bcg_samples [--input FILE] [--output-folder DIR]
"""

import argparse
from pathlib import Path
# local
from bcg_pipeline import config
from bcg_pipeline.config import MyLogger
from bcg_pipeline.sample_loading import load_samples
from bcg_pipeline.sample_cleaning import clean_samples, FLAG_COLUMNS


def write_table(df, csv_path, excel=True):
    """Write df to csv_path, and to an xlsx next to it when excel is True."""
    csv_path = Path(csv_path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(csv_path, index=False)
    written = [csv_path]
    if excel:
        xlsx_path = csv_path.with_suffix('.xlsx')
        df.to_excel(xlsx_path, index=False, engine='openpyxl')
        written.append(xlsx_path)
    return written


def log_diagnostics(diagnostics, logger):
    logger.log('Run summary:')
    for key in ['records', 'sites', 'site_agencies', 'multi_agency_sites', 'winter_records_removed', 'site_years']:
        logger.log(f'  {key}: {diagnostics[key]:,}')
    for flag_col in FLAG_COLUMNS:
        logger.log(f'  records with {flag_col}: {diagnostics[flag_col]:,}')
    diverging = diagnostics['diverging_attributes']
    if diverging:
        counts = {col: len(sites) for col, sites in diverging.items()}
        logger.log(f"  sites with diverging attributes: {counts}")


def run_stage_one(input_file, output_folder, logger, excluded_months=None, excel=True):
    """
    Load, flag, filter and average the samples in input_file; write results to output_folder.

    Returns (flagged samples, yearly table, diagnostics).
    """
    output_folder = Path(output_folder)
    samples, drops = load_samples(input_file, logger=logger)
    flagged, yearly, diagnostics = clean_samples(samples, excluded_months=excluded_months, logger=logger)
    dropped = ['missing_coordinates', 'missing_score', 'unparseable_date']
    diagnostics.update({f'dropped_{k}': v for k, v in drops.items() if k in dropped})

    log_diagnostics(diagnostics, logger)
    for path in write_table(flagged, output_folder / config.flagged_samples_filename.name, excel=excel):
        logger.log(f'Flagged samples saved to: {path}')
    for path in write_table(yearly, output_folder / config.yearly_filename.name, excel=excel):
        logger.log(f'Yearly table saved to: {path}')

    return flagged, yearly, diagnostics


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Clean merged BCG samples and average them to site-years.')
    parser.add_argument('--input', type=Path, default=config.merged_samples_filename,
                        help='merged sample table (.xlsx or .csv)')
    parser.add_argument('--output-folder', type=Path, default=config.output_path)
    parser.add_argument('--no-excel', action='store_true', help='write csv only')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.ensure_directories()

    current_script_name = Path(__file__).stem
    logger = MyLogger(config.log_path / f'log_{current_script_name}.txt')
    logger.log(f'Input: {args.input}')
    run_stage_one(args.input, args.output_folder, logger, excel=not args.no_excel)
    logger.end()


if __name__ == '__main__':
    main()
