import argparse
import json
import sys
from pathlib import Path

from team_scanner.config import ScannerSettings
from team_scanner.directory.formatting import describe_stats, describe_team
from team_scanner.exceptions import ScannerError
from team_scanner.main import ScannerRuntime
from team_scanner.utils import configure_logger
from team_scanner.utils.types import FrameSize


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect team numbers in photos and look them up in the team directory"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan-image", help="Detect team numbers in images and print overlay placement")
    scan.add_argument("images", nargs="+", type=Path, help="Image files, analyzed in order as frames")
    scan.add_argument("--preview-width", type=int, default=None, help="Preview width in display points")
    scan.add_argument("--preview-height", type=int, default=None, help="Preview height in display points")
    scan.add_argument("--json", action="store_true", help="Print overlays as JSON")
    scan.add_argument("--no-gpu", action="store_true", help="Force CPU text recognition")

    team = subparsers.add_parser("team", help="Look up a team number")
    team.add_argument("number", help="Team number")
    team.add_argument("--season", type=int, default=None, help="Season year for quick stats")
    team.add_argument("--no-stats", action="store_true", help="Skip the quick stats request")

    subparsers.add_parser("clear-cache", help="Forget every cached team and stats entry")

    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    settings = ScannerSettings.from_env(Path.cwd())
    logger = configure_logger(settings.log_dir if settings.log_to_file else None)

    runtime: ScannerRuntime | None = None
    try:
        if args.command == "scan-image":
            if args.no_gpu:
                settings.prefer_gpu = False
            runtime = ScannerRuntime(settings)
            from team_scanner.ocr_module.recognizer import load_image

            published = runtime.scan_frames(load_image(path) for path in args.images)
            preview = FrameSize(
                width=args.preview_width or settings.preview_width,
                height=args.preview_height or settings.preview_height,
            )
            views = runtime.overlays(published, preview)
            if args.json:
                print(json.dumps([view.to_dict() for view in views], indent=2))
            elif not views:
                print("No known team numbers detected.")
            else:
                for view in views:
                    name = view.label.replace("\n", " ")
                    print(
                        f"{name:<40} left={view.left:.1f} top={view.top:.1f} "
                        f"w={view.width:.1f} h={view.height:.1f} angle={view.angle_degrees:.1f}"
                    )
            return 0

        if args.command == "team":
            runtime = ScannerRuntime(settings)
            team, stats = runtime.lookup(args.number, season=args.season, with_stats=not args.no_stats)
            if team is None:
                print(f"Team {args.number} not found.")
                return 1
            for line in describe_team(team):
                print(line)
            if not args.no_stats:
                for line in describe_stats(stats):
                    print(f"  {line}")
            return 0

        if args.command == "clear-cache":
            runtime = ScannerRuntime(settings)
            runtime.clear_cache()
            print("Team cache cleared.")
            return 0

    except ScannerError as exc:
        logger.error("Application error: %s", exc)
        print(f"Error: {exc}")
        return 1
    except KeyboardInterrupt:
        print("\nStopped by user.")
        return 1
    except Exception as exc:
        logger.exception("Unexpected failure")
        print(f"Unexpected error: {exc}")
        return 1
    finally:
        if runtime is not None:
            runtime.close()

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
