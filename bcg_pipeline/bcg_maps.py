"""
Stream BCG Survey Planning
Code last updated: 10/16/2026
Script purpose: maps and figures for the HUC8 BCG summary
"""

import matplotlib.pyplot as plt
from matplotlib.colors import Normalize, LinearSegmentedColormap
import geopandas as gpd
import contextily as ctx
import seaborn as sns
import folium
# local
from bcg_pipeline import config

# Color palettes; BCG 1 (natural) is blue, 6 (severely altered) is orange
hex_colors = ['#3d66bd', '#5c7fca', '#c1ceeb', '#f7af58', '#f0880b', '#a447a5']
hex_light_gray = '#d9d9d9'
bcg_cmap = LinearSegmentedColormap.from_list("bcg_cmap", [hex_colors[0], hex_colors[2], hex_colors[4]])
bcg_norm = Normalize(vmin=1, vmax=6)


def plot_huc8_map(huc_gdf, sites=None, save_path=None, basemap=True):
    """
    Choropleth of HUC8 mean BCG score, with the contributing sites on top.

    Parameters:
    huc_gdf (GeoDataFrame): HUC8 polygons joined to the summary (see watershed_summary.join_huc_geometry).
    sites (DataFrame): recent site rows with Latitude/Longitude and BCG_mean; optional.
    save_path (Path): where to write the png; the figure is returned either way.
    basemap (bool): add the Esri topo basemap (needs network access).
    """
    fig, ax = plt.subplots(figsize=(10, 10))
    gdf = huc_gdf.to_crs(epsg=3857)

    unsampled = gdf[gdf['BCG_mean'].isna()]
    sampled = gdf[gdf['BCG_mean'].notna()]
    if not unsampled.empty:
        unsampled.plot(ax=ax, color=hex_light_gray, edgecolor='k', linewidth=0.5, alpha=0.6)
    if not sampled.empty:
        sampled.plot(ax=ax, color=[bcg_cmap(bcg_norm(val)) for val in sampled['BCG_mean']],
                     edgecolor='k', linewidth=0.5, alpha=0.7)

    if sites is not None and len(sites) > 0:
        site_gdf = gpd.GeoDataFrame(
            sites,
            geometry=gpd.points_from_xy(sites[config.lon_col], sites[config.lat_col]),
            crs="EPSG:4269"
        ).to_crs(epsg=3857)
        site_gdf.plot(ax=ax, color=[bcg_cmap(bcg_norm(val)) for val in site_gdf['BCG_mean']],
                      markersize=20, edgecolor='k', linewidth=0.3)

    if basemap:
        ctx.add_basemap(ax, source=ctx.providers.Esri.WorldTopoMap, alpha=0.7, attribution="")
    ax.set_xticks([]), ax.set_yticks([])

    sm = plt.cm.ScalarMappable(cmap=bcg_cmap, norm=bcg_norm)
    cbar = fig.colorbar(sm, ax=ax, orientation='vertical', fraction=0.04)
    cbar.set_label('Mean BCG (most recent sample per site)', fontsize=14)
    ax.set_title(f'HUC8 BCG, sites sampled after {config.recent_year_cutoff}', fontsize=16)

    plt.tight_layout()
    if save_path is not None:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
    return fig


def plot_score_distributions(yearly, save_path=None):
    """Histograms of site-year mean BCG and of sampling years."""
    fig, axes = plt.subplots(1, 2, figsize=(12, 5))

    sns.histplot(data=yearly, x='BCG_mean', binwidth=0.25, color=hex_colors[1], ax=axes[0])
    axes[0].set_xlabel('Site-year mean BCG', fontsize=13)
    axes[0].set_ylabel('Site-years', fontsize=13)

    sns.histplot(data=yearly, x=config.year_col, discrete=True, color=hex_colors[3], ax=axes[1])
    axes[1].set_xlabel('Year', fontsize=13)
    axes[1].set_ylabel('Sites sampled', fontsize=13)
    axes[1].axvline(config.recent_year_cutoff + 0.5, color='k', linestyle='--', linewidth=1)

    plt.tight_layout()
    if save_path is not None:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
    return fig


def make_interactive_map(huc_gdf, save_path=None):
    """Folium choropleth of HUC8 mean BCG; returns the map and saves html when save_path is given."""
    mapped = huc_gdf.to_crs(epsg=4326)
    mapped = mapped[[config.huc8_col, 'BCG_mean', 'n_sites', 'BCG_class', 'geometry']].copy()
    mapped['BCG_class'] = mapped['BCG_class'].astype('float')

    # Center on the sampled units when there are any
    sampled = mapped.dropna(subset=["BCG_mean"])
    bounds = (mapped if sampled.empty else sampled).total_bounds
    m = folium.Map(location=[(bounds[1] + bounds[3]) / 2, (bounds[0] + bounds[2]) / 2],
                   zoom_start=7, tiles="CartoDB positron")

    if not sampled.empty:
        folium.Choropleth(
            geo_data=mapped,
            data=sampled,
            columns=[config.huc8_col, 'BCG_mean'],
            key_on=f"feature.properties.{config.huc8_col}",
            fill_color="YlOrBr",
            nan_fill_color=hex_light_gray,
            legend_name=f"Mean BCG (most recent sample per site, after {config.recent_year_cutoff})",
            fill_opacity=0.7, line_opacity=0.3,
        ).add_to(m)
    folium.GeoJson(
        mapped,
        style_function=lambda feature: {'fillOpacity': 0, 'weight': 0},
        tooltip=folium.GeoJsonTooltip(fields=[config.huc8_col, 'BCG_mean', 'n_sites', 'BCG_class']),
    ).add_to(m)

    if save_path is not None:
        m.save(str(save_path))
    return m
