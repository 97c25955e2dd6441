"""
data_utils.py - Input loading helpers

Reading the three input files is delegated to geopandas; these helpers add the
logging and the error reporting shared by the CLI commands.
"""

from pathlib import Path
from typing import Optional, Union

import geopandas as gpd
import pandas as pd
from loguru import logger


def load_geo_file(
    file_path: Union[str, Path], dataset_name: str, layer: Optional[str] = None
) -> gpd.GeoDataFrame:
    """
    Load any geopandas-readable file (GeoJSON, GeoPackage, Shapefile, File Geodatabase).

    Args:
        file_path: Path to the geospatial file
        dataset_name: Name used in log messages
        layer: Layer to read for multi-layer sources

    Returns:
        Loaded GeoDataFrame

    Raises:
        FileNotFoundError: If the file does not exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        logger.error(f"❌ File not found: {file_path}")
        raise FileNotFoundError(f"{dataset_name} input not found: {file_path}")

    logger.info(f"🗺️ Loading {dataset_name} from {file_path.name}" + (f" (layer {layer})" if layer else ""))
    gdf = gpd.read_file(file_path, layer=layer) if layer else gpd.read_file(file_path)
    log_data_summary(gdf, dataset_name)
    return gdf


def log_data_summary(data: Union[pd.DataFrame, gpd.GeoDataFrame], data_name: str) -> None:
    """
    Log a standard summary of loaded data.

    Args:
        data: DataFrame or GeoDataFrame to summarize
        data_name: Human-readable name for the data
    """
    if isinstance(data, gpd.GeoDataFrame):
        logger.info(f"  ✓ Loaded {data_name}: {len(data):,} features")
        if data.crs:
            logger.debug(f"    CRS: {data.crs}")
        else:
            logger.warning(f"    ⚠️ {data_name} has no CRS")
    else:
        logger.info(f"  ✓ Loaded {data_name}: {len(data):,} rows")

    logger.debug(f"    Columns: {list(data.columns)[:10]}{'...' if len(data.columns) > 10 else ''}")
