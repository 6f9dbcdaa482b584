"""Command line entry point for the stage-1 preparation."""

from __future__ import annotations

import argparse
from typing import Any

from .config import ConfigLoader, PipelineConfig
from .pipeline import Stage1Pipeline
from .utils.logger import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rebuild LIDC-IDRI CT volumes and attach nodule list annotations"
    )
    parser.add_argument(
        "--config",
        type=str,
        action="append",
        help="YAML configuration file; repeat to overlay later files on earlier ones",
    )
    parser.add_argument("--input-dir", type=str, help="Root of the LIDC-IDRI DICOM tree")
    parser.add_argument("--output-dir", type=str, help="Root of the stage-1 output tree")
    parser.add_argument("--nodule-list", type=str, help="Nodule size list CSV")
    parser.add_argument(
        "--compression", choices=["none", "zlib"], help="Encoding of the voxel dump"
    )
    parser.add_argument("--log-file", type=str, help="Optional log file")
    parser.add_argument(
        "--dump-config",
        type=str,
        metavar="PATH",
        help="Write the resolved configuration to PATH and exit",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> PipelineConfig:
    """Combine the optional YAML files with command line overrides."""

    config = PipelineConfig()
    if args.config:
        config = PipelineConfig.from_yaml(args.config[0])
        for overlay in args.config[1:]:
            config = config.merge_from_file(overlay)

    overrides: dict[str, Any] = {}
    paths = {
        "input_dir": args.input_dir,
        "output_dir": args.output_dir,
        "nodule_list": args.nodule_list,
    }
    paths = {k: v for k, v in paths.items() if v is not None}
    if paths:
        overrides["paths"] = paths
    if args.compression is not None:
        overrides["output"] = {"compression": args.compression}
    if args.log_file is not None:
        overrides["logging"] = {"log_file": args.log_file}

    return config.merge_from_dict(overrides) if overrides else config


def main(argv: list[str] | None = None) -> int:
    """Run the pipeline; returns 1 when any series failed."""

    args = build_parser().parse_args(argv)
    config = resolve_config(args)

    if args.dump_config:
        ConfigLoader.save_yaml(config.to_dict(), args.dump_config)
        print(f"Configuration written to {args.dump_config}")
        return 0

    logger = setup_logging(config.logging)
    logger.info(f"Starting stage-1 run: {config!r}")

    summary = Stage1Pipeline(config).run()

    for key, reason in summary.failed:
        logger.error(f"Failed: {key}: {reason}")

    counts = ", ".join(f"{name}={count}" for name, count in summary.as_counts().items())
    print(f"Stage-1 complete: {counts}")
    return 0 if summary.ok else 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
