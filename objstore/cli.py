"""Command-line interface for object storage."""

import argparse
import logging
import shutil
import sys
from pathlib import Path

from objstore.bench import Benchmark
from objstore.config import DEFAULT_CONFIG_PATH, Config
from objstore.errors import ConfigurationError, StorageError
from objstore.storage import DriverRegistry, ObjectStorage, default_registry
from objstore.utils import format_size, format_time

BENCH_PROFILES = {
    "quick": [(1024, 100), (10 * 1024, 50), (100 * 1024, 20)],
    "default": [(1024, 100), (10 * 1024, 50), (100 * 1024, 20), (1024 * 1024, 10)],
    "full": [
        (1024, 100),
        (10 * 1024, 50),
        (100 * 1024, 20),
        (1024 * 1024, 10),
        (10 * 1024 * 1024, 5),
        (100 * 1024 * 1024, 2),
    ],
}


def open_store(args, config: Config, registry: DriverRegistry) -> ObjectStorage:
    return config.open_store(args.store, registry)


def cmd_ls(args, config: Config, registry: DriverRegistry):
    """List objects."""
    storage = open_store(args, config, registry)
    page_size = args.limit if args.limit else config.storage.page_size

    count = 0
    total = 0
    for obj in storage.start_listing(args.prefix, page_size):
        print(f"{format_time(obj.mtime):<20} {format_size(obj.size):>8}  {obj.key}")
        count += 1
        total += obj.size

    print(f"\n{count} objects, {format_size(total)}")


def cmd_get(args, config: Config, registry: DriverRegistry):
    """Download an object, or a byte range of it."""
    storage = open_store(args, config, registry)
    with storage.get(args.key, args.offset, args.limit) as reader:
        if args.output and args.output != "-":
            with open(args.output, "wb") as out:
                shutil.copyfileobj(reader, out)
        else:
            shutil.copyfileobj(reader, sys.stdout.buffer)
            sys.stdout.buffer.flush()


def cmd_put(args, config: Config, registry: DriverRegistry):
    """Upload a file (or stdin) as an object."""
    storage = open_store(args, config, registry)
    if args.file == "-":
        storage.put(args.key, sys.stdin.buffer)
    else:
        with open(args.file, "rb") as f:
            storage.put(args.key, f)
    print(f"Uploaded {args.key} to {storage.identity()}")


def cmd_cp(args, config: Config, registry: DriverRegistry):
    """Copy an object within a store."""
    storage = open_store(args, config, registry)
    storage.copy(args.dst, args.src)
    print(f"Copied {args.src} to {args.dst}")


def cmd_rm(args, config: Config, registry: DriverRegistry):
    """Delete objects."""
    storage = open_store(args, config, registry)
    for key in args.keys:
        storage.delete(key)
        print(f"Deleted {key}")


def cmd_mb(args, config: Config, registry: DriverRegistry):
    """Create the container behind a store."""
    storage = open_store(args, config, registry)
    storage.create()
    print(f"Ready: {storage.identity()}")


def cmd_stat(args, config: Config, registry: DriverRegistry):
    """Check whether an object exists."""
    storage = open_store(args, config, registry)
    storage.exists(args.key)
    print(f"{args.key}: exists in {storage.identity()}")


def cmd_schemes(args, config: Config, registry: DriverRegistry):
    """Show registered URI schemes and configured stores."""
    print("Schemes: " + ", ".join(registry.schemes()))
    stores = config.get_enabled_stores()
    if stores:
        print("\nConfigured stores:")
        for store in stores:
            print(f"  {store.name:<20} {store.uri}")


def cmd_bench(args, config: Config, registry: DriverRegistry):
    """Run put/get throughput benchmarks against a store."""
    storage = open_store(args, config, registry)
    sizes = BENCH_PROFILES[args.profile]

    print("\n" + "=" * 100)
    print(f"BENCHMARKING: {storage.identity()}")
    print(f"Profile: {args.profile}, workers: {args.workers}")
    print("=" * 100)

    bench = Benchmark(storage, args.prefix)
    try:
        for result in bench.run(sizes, args.workers):
            print(result)
    finally:
        print("=" * 100)
        print(f"\nCleaning up objects with prefix: {bench.prefix}/")
        deleted = bench.cleanup()
        print(f"Deleted {deleted} objects")


COMMANDS = {
    "ls": cmd_ls,
    "get": cmd_get,
    "put": cmd_put,
    "cp": cmd_cp,
    "rm": cmd_rm,
    "mb": cmd_mb,
    "stat": cmd_stat,
    "schemes": cmd_schemes,
    "bench": cmd_bench,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Store, fetch, list and delete objects across storage backends"
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG_PATH, help="Path to the TOML configuration file"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    store_help = "Configured store name or URI (e.g. gs://bucket.region)"

    ls_parser = subparsers.add_parser("ls", help="List objects")
    ls_parser.add_argument("store", help=store_help)
    ls_parser.add_argument("prefix", nargs="?", default="", help="Key prefix")
    ls_parser.add_argument("--limit", "-l", type=int, help="Page size for listing requests")

    get_parser = subparsers.add_parser("get", help="Download an object")
    get_parser.add_argument("store", help=store_help)
    get_parser.add_argument("key", help="Object key")
    get_parser.add_argument("--offset", type=int, default=0, help="First byte to read")
    get_parser.add_argument(
        "--limit", type=int, default=0, help="Number of bytes to read (default: to the end)"
    )
    get_parser.add_argument("--output", "-o", help="Output file (default: stdout)")

    put_parser = subparsers.add_parser("put", help="Upload an object")
    put_parser.add_argument("store", help=store_help)
    put_parser.add_argument("key", help="Object key")
    put_parser.add_argument("file", help="File to upload, or - for stdin")

    cp_parser = subparsers.add_parser("cp", help="Copy an object within a store")
    cp_parser.add_argument("store", help=store_help)
    cp_parser.add_argument("src", help="Source key")
    cp_parser.add_argument("dst", help="Destination key")

    rm_parser = subparsers.add_parser("rm", help="Delete objects")
    rm_parser.add_argument("store", help=store_help)
    rm_parser.add_argument("keys", nargs="+", help="Object keys")

    mb_parser = subparsers.add_parser("mb", help="Create the container (idempotent)")
    mb_parser.add_argument("store", help=store_help)

    stat_parser = subparsers.add_parser("stat", help="Check whether an object exists")
    stat_parser.add_argument("store", help=store_help)
    stat_parser.add_argument("key", help="Object key")

    subparsers.add_parser("schemes", help="Show supported schemes and configured stores")

    bench_parser = subparsers.add_parser("bench", help="Benchmark a store")
    bench_parser.add_argument("store", help=store_help)
    bench_parser.add_argument(
        "--profile", choices=sorted(BENCH_PROFILES), default="default", help="Object size profile"
    )
    bench_parser.add_argument("--workers", "-w", type=int, default=10, help="Parallel workers")
    bench_parser.add_argument("--prefix", default="objstore-bench", help="Prefix for test objects")

    return parser


def load_config(path: str) -> Config:
    """Load the config file; a missing default file means no named stores."""
    if path == DEFAULT_CONFIG_PATH and not Path(path).exists():
        return Config.empty()
    return Config.from_file(path)


def main(argv: list[str] | None = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Load configuration
    try:
        config = load_config(args.config)
        config.validate()
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(2)

    registry = default_registry()

    # Execute command
    try:
        COMMANDS[args.command](args, config, registry)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)
    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
