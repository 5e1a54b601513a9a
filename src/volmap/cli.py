"""Command-line interface for volmap."""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np
import yaml

from volmap.calibration import (
    CalibrationResolver,
    IntrinsicDescriptor,
    InvalidSizeError,
)
from volmap.config import MapperConfig


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_yaml(path: Path, what: str):
    if not path.exists():
        print(f"Error: {what} not found: {path}", file=sys.stderr)
        sys.exit(1)
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in {what}: {e}", file=sys.stderr)
        sys.exit(1)


def init_config(
    config_path: Path,
    world_frame: str = "world",
    q_path: Path | None = None,
) -> MapperConfig:
    """Write a default configuration, optionally with an explicit Q matrix.

    Args:
        config_path: Where the config YAML is written.
        world_frame: Name of the world frame.
        q_path: Optional YAML file holding 16 row-major Q values, either as a
            flat list or under a ``Q`` key.

    Returns:
        The generated MapperConfig.

    Raises:
        SystemExit: If the Q file is missing, unreadable or not 16 values.
    """
    q_values = None
    if q_path is not None:
        data = _load_yaml(q_path, "Q file")
        if isinstance(data, dict):
            data = data.get("Q")
        try:
            q_values = [float(v) for v in np.asarray(data, dtype=np.float64).ravel()]
        except (TypeError, ValueError) as e:
            print(f"Error: Q file does not hold numbers: {e}", file=sys.stderr)
            sys.exit(1)
        if len(q_values) != 16:
            print(
                f"Error: Q file holds {len(q_values)} values, expected 16",
                file=sys.stderr,
            )
            sys.exit(1)

    try:
        config = MapperConfig(world_frame=world_frame)
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)
    config.calibration.Q = q_values

    config.to_yaml(config_path)
    print(f"[OK] Configuration saved to: {config_path}")
    return config


def check_command(
    config_path: Path,
    left_info: Path | None = None,
    right_info: Path | None = None,
    verbose: bool = False,
) -> bool:
    """Resolve calibration from a config and optional camera_info files.

    Prints the readiness state, the expected image size and, when ready, the
    reprojection matrix.

    Args:
        config_path: Path to the config YAML file.
        left_info: Optional left camera_info YAML.
        right_info: Optional right camera_info YAML.
        verbose: If True, set logging to DEBUG level.

    Returns:
        True if the reprojection matrix is ready.

    Raises:
        SystemExit: If the config or a camera_info file cannot be loaded.
    """
    _configure_logging(verbose)

    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        sys.exit(1)

    try:
        config = MapperConfig.from_yaml(config_path)
    except (ValueError, yaml.YAMLError) as e:
        print(f"Error: Failed to load config: {e}", file=sys.stderr)
        sys.exit(1)

    resolver = CalibrationResolver(config.calibration.image_size)
    if config.calibration.Q is not None:
        try:
            resolver.set_explicit(config.calibration.Q)
        except InvalidSizeError as e:
            print(f"[WARN] {e}")

    for path, side in ((left_info, "left"), (right_info, "right")):
        if path is None:
            continue
        data = _load_yaml(path, f"{side} camera info")
        try:
            descriptor = IntrinsicDescriptor.from_camera_info(data or {})
        except (KeyError, ValueError) as e:
            print(f"Error: Invalid {side} camera info: {e}", file=sys.stderr)
            sys.exit(1)
        if side == "left":
            resolver.on_left_intrinsics(descriptor)
        else:
            resolver.on_right_intrinsics(descriptor)

    width, height = resolver.image_size
    print(f"World frame:  {config.world_frame}")
    print(f"Calibration:  {resolver.readiness.value}")
    print(f"Image size:   {width}x{height}")
    if resolver.is_ready():
        print("Reprojection matrix:")
        with np.printoptions(precision=6, suppress=True):
            print(resolver.matrix())
    return resolver.is_ready()


def main() -> None:
    """Main entry point for the volmap CLI."""
    parser = argparse.ArgumentParser(
        prog="volmap",
        description="Calibration and transform resolution for volumetric mapping.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init subcommand
    init_parser = subparsers.add_parser("init", help="Write a default config")
    init_parser.add_argument(
        "--config",
        type=Path,
        default=Path("volmap.yaml"),
        help="Output config path (default: volmap.yaml)",
    )
    init_parser.add_argument(
        "--world-frame",
        default="world",
        help="World frame name (default: world)",
    )
    init_parser.add_argument(
        "--q",
        type=Path,
        default=None,
        help="YAML file with 16 row-major reprojection matrix values",
    )

    # check subcommand
    check_parser = subparsers.add_parser(
        "check", help="Resolve calibration from config and camera info"
    )
    check_parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to config YAML file",
    )
    check_parser.add_argument(
        "--left-info",
        type=Path,
        default=None,
        help="Left camera_info YAML",
    )
    check_parser.add_argument(
        "--right-info",
        type=Path,
        default=None,
        help="Right camera_info YAML",
    )
    check_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.command == "init":
        init_config(
            config_path=args.config,
            world_frame=args.world_frame,
            q_path=args.q,
        )
    elif args.command == "check":
        ready = check_command(
            config_path=args.config,
            left_info=args.left_info,
            right_info=args.right_info,
            verbose=args.verbose,
        )
        if not ready:
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
