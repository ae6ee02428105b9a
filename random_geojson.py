"""Random GeoJSON generator.

Builds a FeatureCollection of random Point, LineString and Polygon features,
optionally with random scalar properties, and writes it to disk.
"""

import argparse
import json
import logging
import math
import os
import sys
import uuid
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import geopandas as gpd
import numpy as np
import pandas as pd
import psutil
from shapely.geometry import shape
from tqdm import tqdm

from random_geometry import (
    CoordinateSystem,
    GeometryKind,
    InvalidArgument,
    LINESTRING_POINTS,
    POLYGON_POINTS,
    random_geometry,
)

__version__ = "1.0.0"

# --- CONFIGURATION ---

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

BATCH_SIZE = 10000
DEFAULT_OUTPUT_FILE = "random.geojson"

PROPERTY_INT_RANGE = (0, 1000)
PROPERTY_WORD_COUNT = (3, 10)
WORDS = [
    "anchor", "apple", "autumn", "badge", "basket", "beacon", "bicycle", "blanket",
    "bridge", "bright", "canyon", "carbon", "castle", "cedar", "channel", "circle",
    "cloud", "cobalt", "copper", "coral", "cotton", "crater", "crystal", "delta",
    "desert", "dragon", "drift", "eagle", "ember", "engine", "falcon", "feather",
    "field", "forest", "fossil", "garden", "glacier", "granite", "harbor", "hazel",
    "horizon", "island", "ivory", "jacket", "jungle", "kettle", "ladder", "lagoon",
    "lantern", "lemon", "linen", "marble", "meadow", "meteor", "mirror", "monsoon",
    "mountain", "needle", "nickel", "oasis", "ocean", "orbit", "orchard", "paddle",
    "paper", "pebble", "pepper", "pillow", "planet", "pocket", "prairie", "quartz",
    "quiet", "rabbit", "radar", "rapid", "raven", "ribbon", "river", "rocket",
    "saddle", "salmon", "shadow", "signal", "silver", "summit", "sunset", "tablet",
    "thunder", "timber", "tunnel", "valley", "velvet", "violet", "walnut", "willow",
    "window", "winter", "yellow", "zephyr",
]

CONFIG_KEYS = (
    "num_properties", "length", "geometry_type", "coordinate_system", "pretty",
    "output_file", "seed", "workers", "validate",
)


def load_config(config_path):
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except (OSError, ValueError) as e:
        raise InvalidArgument(f"Failed to read config file {config_path}: {e}") from e
    if not isinstance(config, dict):
        raise InvalidArgument(f"Config file {config_path} must contain a JSON object")
    unknown = sorted(set(config) - set(CONFIG_KEYS))
    if unknown:
        raise InvalidArgument(f"Unknown config keys: {', '.join(unknown)}")
    return config


# --- RANDOM PROPERTIES ---

def random_property_value(rng):
    """Random scalar: an int in [0, 1000), a few random words, or a bool."""
    choice = int(rng.integers(0, 3))
    if choice == 0:
        return int(rng.integers(*PROPERTY_INT_RANGE))
    if choice == 1:
        num_words = int(rng.integers(*PROPERTY_WORD_COUNT))
        return " ".join(WORDS[i] for i in rng.integers(0, len(WORDS), num_words))
    return bool(rng.random() < 0.5)


def random_properties(num_properties, rng):
    return {f"prop{i}": random_property_value(rng) for i in range(1, num_properties + 1)}


def random_feature_id(rng):
    return str(uuid.UUID(bytes=rng.bytes(16), version=4))


# --- FEATURE GENERATION ---

def resolve_workers(workers):
    """Worker process count; 0 means physical cores minus one."""
    if workers > 0:
        return workers
    system_cores = psutil.cpu_count(logical=False) or psutil.cpu_count() or 1
    return max(1, system_cores - 1)


def plan_batches(length, batch_size=BATCH_SIZE):
    num_batches = math.ceil(length / batch_size)
    return [min(batch_size, length - i * batch_size) for i in range(num_batches)]


def generate_feature_batch(params):
    batch_id, count, geometry_kind, coordinate_system, num_properties, seed_sequence = params
    rng = np.random.default_rng(seed_sequence)
    features = []
    for _ in range(count):
        feature_id = random_feature_id(rng)
        geometry = random_geometry(geometry_kind, coordinate_system, rng)
        properties = random_properties(num_properties, rng)
        features.append((feature_id, geometry, properties))
    logger.debug(f"Batch {batch_id} generated {count} features")
    return features


def build_feature_collection(features, num_properties=0):
    """Wrap (id, geometry, properties) records into a GeoDataFrame indexed by id."""
    index = pd.Index([feature_id for feature_id, _, _ in features], name="id")
    if num_properties > 0:
        columns = [f"prop{i}" for i in range(1, num_properties + 1)]
        frame = pd.DataFrame([props for _, _, props in features], index=index, columns=columns)
    else:
        frame = pd.DataFrame(index=index)
    geometry = gpd.GeoSeries([geom for _, geom, _ in features], index=index)
    return gpd.GeoDataFrame(frame, geometry=geometry)


def generate_features(length, geometry_kind, coordinate_system, num_properties=0,
                      seed=None, workers=1, batch_size=BATCH_SIZE, progress=True):
    """Generate ``length`` random features.

    Every batch draws from its own generator spawned from one SeedSequence,
    so a given seed produces the same collection whatever the worker count.

    Args:
        length: Number of features
        geometry_kind: GeometryKind to generate (ALL picks one per feature)
        coordinate_system: CoordinateSystem whose bounds constrain coordinates
        num_properties: Number of random properties per feature
        seed: Optional integer seed
        workers: Worker processes (1 runs in-process, 0 picks automatically)
        batch_size: Features per batch
        progress: Show a tqdm progress bar

    Returns:
        GeoDataFrame indexed by feature id
    """
    seed_sequence = np.random.SeedSequence(seed)
    logger.info(f"Random seed: {seed_sequence.entropy}")
    sizes = plan_batches(length, batch_size)
    children = seed_sequence.spawn(len(sizes))
    batch_params = [
        (i, size, geometry_kind, coordinate_system, num_properties, children[i])
        for i, size in enumerate(sizes)
    ]
    num_workers = min(resolve_workers(workers), max(1, len(batch_params)))
    logger.info(f"Generating {length:,} features in {len(batch_params)} batch(es) "
                f"using {num_workers} worker(s)")
    results = [None] * len(batch_params)
    with tqdm(total=length, desc="Generating features", disable=not progress) as bar:
        if num_workers == 1:
            for params in batch_params:
                results[params[0]] = generate_feature_batch(params)
                bar.update(params[1])
        else:
            with ProcessPoolExecutor(max_workers=num_workers) as executor:
                futures = {executor.submit(generate_feature_batch, params): params[0]
                           for params in batch_params}
                for future in as_completed(futures):
                    batch_id = futures[future]
                    try:
                        results[batch_id] = future.result()
                    except Exception as e:
                        logger.error(f"Error in batch {batch_id}: {e}")
                        raise
                    bar.update(len(results[batch_id]))
    features = [feature for batch in results for feature in batch]
    return build_feature_collection(features, num_properties)


# --- SERIALIZATION ---

def to_geojson(features, pretty=False):
    try:
        return features.to_json(drop_id=False, indent=2 if pretty else None)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"Failed to serialize GeoJSON: {e}") from e


def save_geojson(features, file_path, pretty=False):
    geojson_string = to_geojson(features, pretty)
    try:
        output_dir = os.path.dirname(file_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(geojson_string)
    except OSError as e:
        raise InvalidArgument(f"Failed to write file: {e}") from e
    logger.info(f"Saved: {file_path} ({os.path.getsize(file_path) / 1024 / 1024:.2f} MB)")


# --- VALIDATION ---

def _within_bounds(geom, bounds):
    min_x, min_y, max_x, max_y = geom.bounds
    return (bounds.min_lon <= min_x and max_x < bounds.max_lon and
            bounds.min_lat <= min_y and max_y < bounds.max_lat)


def validate_feature_collection(file_path, coordinate_system, geometry_kind=GeometryKind.ALL):
    """Read a written GeoJSON file back and check it against the generator's guarantees.

    Returns a results dict; ``passed`` is True when no issue was found.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            collection = json.load(f)
    except (OSError, ValueError) as e:
        raise InvalidArgument(f"Failed to read GeoJSON {file_path}: {e}") from e
    bounds = coordinate_system.bounds()
    expected_types = None
    if geometry_kind is not GeometryKind.ALL:
        expected_types = {geometry_kind.value}
    results = {
        'passed': True,
        'total_features': 0,
        'duplicate_ids': [],
        'kind_mismatches': [],
        'bounds_issues': [],
        'size_issues': [],
        'unclosed_rings': [],
    }
    seen_ids = set()
    for i, feature in enumerate(collection.get('features', [])):
        results['total_features'] += 1
        feature_id = feature.get('id')
        if feature_id in seen_ids:
            results['duplicate_ids'].append(feature_id)
        seen_ids.add(feature_id)
        raw = feature['geometry']
        geom = shape(raw)
        if expected_types and geom.geom_type not in expected_types:
            results['kind_mismatches'].append({'index': i, 'geometry_type': geom.geom_type})
        if not _within_bounds(geom, bounds):
            results['bounds_issues'].append({'index': i, 'geometry_bounds': geom.bounds})
        if geom.geom_type == 'LineString':
            num_points = len(raw['coordinates'])
            if not LINESTRING_POINTS[0] <= num_points < LINESTRING_POINTS[1]:
                results['size_issues'].append({'index': i, 'points': num_points})
        elif geom.geom_type == 'Polygon':
            rings = raw['coordinates']
            ring = rings[0]
            # drawn points plus the closing copy
            if len(rings) != 1 or not POLYGON_POINTS[0] + 1 <= len(ring) <= POLYGON_POINTS[1]:
                results['size_issues'].append({'index': i, 'points': len(ring), 'rings': len(rings)})
            if ring[0] != ring[-1]:
                results['unclosed_rings'].append(i)
    results['passed'] = not any(
        results[key] for key in
        ('duplicate_ids', 'kind_mismatches', 'bounds_issues', 'size_issues', 'unclosed_rings')
    )
    logger.info("=== Validation Summary ===")
    logger.info(f"Overall validation: {'PASSED' if results['passed'] else 'FAILED'}")
    logger.info(f"- Features: {results['total_features']:,}")
    logger.info(f"- Duplicate ids: {len(results['duplicate_ids'])}")
    logger.info(f"- Geometry type mismatches: {len(results['kind_mismatches'])}")
    logger.info(f"- Bounds issues: {len(results['bounds_issues'])}")
    logger.info(f"- Size issues: {len(results['size_issues'])}")
    logger.info(f"- Unclosed rings: {len(results['unclosed_rings'])}")
    return results


# --- COMMAND LINE ---

@dataclass
class GenerationOptions:
    num_properties: int = 0
    length: int = 100
    geometry_kind: GeometryKind = GeometryKind.ALL
    coordinate_system: CoordinateSystem = CoordinateSystem.WGS84
    pretty: bool = False
    output_file: str = DEFAULT_OUTPUT_FILE
    seed: Optional[int] = None
    workers: int = 1
    validate: bool = False


def parse_count(value, name):
    """Parse a non-negative integer option."""
    if isinstance(value, bool):
        raise InvalidArgument(f"{name} must be zero or more")
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"{name} must be zero or more (got {value})") from None
    if count < 0 or str(count) != str(value).strip():
        raise InvalidArgument(f"{name} must be zero or more (got {value})")
    return count


def parse_flag(value, name):
    if isinstance(value, bool):
        return value
    if str(value).strip().lower() in ('yes', 'true', '1'):
        return True
    if str(value).strip().lower() in ('no', 'false', '0'):
        return False
    raise InvalidArgument(f"{name} must be a boolean (got {value})")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="random-geojson",
        description="Random Geojson is a tool to generate random geojson data.",
    )
    parser.add_argument('--config', help="Path to JSON config file supplying option defaults")
    parser.add_argument('--num-properties', dest='num_properties', default=0,
                        help="Number of properties per feature (default: 0)")
    parser.add_argument('--length', default=100, help="Number of features (default: 100)")
    parser.add_argument('--geometry-type', dest='geometry_type', default="All",
                        help="Point, LineString, Polygon or All (default: All)")
    parser.add_argument('--coordinate-system', dest='coordinate_system', default="WGS84",
                        help="WGS84, 4326, WebMercator, web_mercator or 3857 (default: WGS84)")
    parser.add_argument('--pretty', action='store_true', default=False,
                        help="Pretty print the output GeoJSON")
    parser.add_argument('-o', '--output-file', dest='output_file', default=DEFAULT_OUTPUT_FILE,
                        help=f"File to save the generated GeoJSON (default: {DEFAULT_OUTPUT_FILE})")
    parser.add_argument('--seed', default=None, help="Seed for a reproducible run")
    parser.add_argument('--workers', default=1,
                        help="Worker processes, 0 for one per physical core minus one (default: 1)")
    parser.add_argument('--validate', action='store_true', default=False,
                        help="Read the written file back and validate it")
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    return parser


def parse_arguments(argv=None):
    parser = build_parser()
    known, _ = parser.parse_known_args(argv)
    if known.config:
        parser.set_defaults(**load_config(known.config))
    return parser.parse_args(argv)


def options_from_args(args):
    seed = None
    if args.seed is not None:
        seed = parse_count(args.seed, "seed")
    return GenerationOptions(
        num_properties=parse_count(args.num_properties, "num-properties"),
        length=parse_count(args.length, "length"),
        geometry_kind=GeometryKind.parse(args.geometry_type),
        coordinate_system=CoordinateSystem.parse(args.coordinate_system),
        pretty=parse_flag(args.pretty, "pretty"),
        output_file=str(args.output_file),
        seed=seed,
        workers=parse_count(args.workers, "workers"),
        validate=parse_flag(args.validate, "validate"),
    )


def run(options):
    start_time = datetime.now()
    logger.info(f"Generating {options.length:,} {options.geometry_kind.value} features "
                f"in EPSG:{options.coordinate_system.epsg} bounds...")
    features = generate_features(
        options.length, options.geometry_kind, options.coordinate_system,
        num_properties=options.num_properties, seed=options.seed, workers=options.workers,
    )
    elapsed_time = datetime.now() - start_time
    logger.info(f"Data generation completed in {elapsed_time.total_seconds():.2f} seconds")
    save_geojson(features, options.output_file, options.pretty)
    if options.validate:
        return validate_feature_collection(
            options.output_file, options.coordinate_system, options.geometry_kind
        )
    return None


def main(argv=None):
    logger.info("Random GeoJSON Generator")
    logger.info("==============================================")
    try:
        options = options_from_args(parse_arguments(argv))
        results = run(options)
    except InvalidArgument as e:
        logger.error(str(e))
        return 1
    if results is not None and not results['passed']:
        logger.error(f"Validation failed for {options.output_file}")
        return 1
    logger.info("Process completed successfully.")
    return 0


# --- MAIN ENTRYPOINT ---

if __name__ == "__main__":
    sys.exit(main())
