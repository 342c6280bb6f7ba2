#!/usr/bin/env python3
"""
Command-line interface for the co-expression database and engine.

Usage:
    coexpression-data init                                   # Create tables
    coexpression-data import-expression data/rna_single_cell_type_tissue.tsv --clear
    coexpression-data import-pairs data/receptor_ligand_pairs.csv
    coexpression-data status                                 # Counts and sample genes
    coexpression-data compare TNF,IL6 TNFRSF1A,IL6R --page 1
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("coexpression.cli")

SAMPLE_GENES = ["TNF", "TNFRSF1A", "IL6", "ACTB", "GAPDH"]


def get_db():
    """Get a pooled database connection (DATABASE_URL)."""
    from .pg_connection import PostgresDB

    return PostgresDB()


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize the database with schema."""
    from .schema import init_database

    db = get_db()

    try:
        init_database(db)
        logger.info("Database initialized successfully")
        return 0
    except Exception as e:
        logger.error("Failed to initialize database: %s", e)
        return 1
    finally:
        db.close()


def cmd_import_expression(args: argparse.Namespace) -> int:
    """Stream the expression TSV into the database."""
    from .loaders.tsv import ExpressionLoader
    from .repositories.expression import PostgresExpressionRepository
    from .schema import init_database

    db = get_db()

    try:
        init_database(db)
        loader = ExpressionLoader(PostgresExpressionRepository(db))
        summary = loader.load(args.file, batch_size=args.batch_size, clear_existing=args.clear)
        print(
            f"Imported {summary['inserted']:,} records "
            f"({summary['lines']:,} lines, {summary['skipped']:,} skipped)"
        )
        return 0
    except Exception as e:
        logger.error("Import failed: %s", e)
        return 1
    finally:
        db.close()


def cmd_import_pairs(args: argparse.Namespace) -> int:
    """Load curated receptor/ligand pairs."""
    from .loaders.tsv import load_pairs
    from .repositories.pairs import PostgresPairRepository
    from .schema import init_database

    db = get_db()

    try:
        init_database(db)
        summary = load_pairs(args.file, PostgresPairRepository(db))
        print(f"Loaded {summary['loaded']:,} pairs ({summary['skipped']:,} skipped)")
        return 0
    except Exception as e:
        logger.error("Pair import failed: %s", e)
        return 1
    finally:
        db.close()


def cmd_status(args: argparse.Namespace) -> int:
    """Show database status."""
    from .core.types import Axis
    from .repositories.expression import PostgresExpressionRepository
    from .schema import get_schema_version, get_table_counts

    db = get_db()

    try:
        if not db.is_initialized():
            logger.info("Database is not initialized; run `init` first")
            return 1

        repo = PostgresExpressionRepository(db)
        tissues = repo.list_categories(Axis.tissue)
        cell_types = repo.list_categories(Axis.cell)

        print("\nCoexpression Database Status")
        print("=" * 50)
        print(f"Schema Version: {get_schema_version(db)}")
        print()
        print("Table Counts:")
        for table, count in sorted(get_table_counts(db).items()):
            print(f"  {table}: {count:,}")

        print()
        print(f"Tissues ({len(tissues)}):")
        for tissue in tissues:
            print(f"  - {tissue}")

        print()
        print(f"Cell Types ({len(cell_types)}, first 20):")
        for cell_type in cell_types[:20]:
            print(f"  - {cell_type}")
        if len(cell_types) > 20:
            print(f"  ... and {len(cell_types) - 20} more cell types")

        print()
        print("Sample Gene Availability:")
        for gene in args.genes or SAMPLE_GENES:
            print(f"  {gene}: {repo.count_gene_records(gene):,} records")

        return 0

    except Exception as e:
        logger.error("Failed to get status: %s", e)
        return 1
    finally:
        db.close()


async def cmd_compare_async(args: argparse.Namespace) -> int:
    from .core.config import get_settings
    from .core.errors import InvalidInputError
    from .core.models import BatchFailed
    from .external.protein_atlas import ProteinAtlasClient
    from .services.pairs import cartesian_pairs
    from .services.ranking import run_batch

    settings = get_settings()

    try:
        pairs = cartesian_pairs(args.first, args.second)
    except InvalidInputError as e:
        logger.error("%s: %s", e.message, e.details)
        return 1

    async with ProteinAtlasClient.from_settings(settings) as client:
        terminal = await run_batch(
            pairs,
            args.page,
            args.page_size if args.page_size is not None else settings.default_page_size,
            client.get_expression_profile,
            binarization=args.binarization or settings.binarization,
            top_k=args.top_k if args.top_k is not None else settings.top_k,
            strategy=args.strategy or settings.combine_strategy,
        )

    if terminal is None:
        logger.error("Batch produced no result")
        return 1

    print(json.dumps(terminal.model_dump(mode="json", exclude_none=True), indent=2))
    return 1 if isinstance(terminal, BatchFailed) else 0


def cmd_compare(args: argparse.Namespace) -> int:
    """Score every pair of two comma-separated gene lists and print JSON."""
    return asyncio.run(cmd_compare_async(args))


def main(argv: list[str] | None = None) -> int:
    from .core.types import BinarizationStrategy, CombineStrategy

    parser = argparse.ArgumentParser(
        description="Co-expression database management and pair scoring",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init command
    subparsers.add_parser("init", help="Create tables and indexes")

    # import-expression command
    import_parser = subparsers.add_parser(
        "import-expression", help="Import rna_single_cell_type_tissue.tsv"
    )
    import_parser.add_argument("file", help="Path to the expression TSV")
    import_parser.add_argument("--batch-size", type=int, default=1000, help="Rows per insert batch")
    import_parser.add_argument("--clear", action="store_true", help="Delete existing observations first")

    # import-pairs command
    pairs_parser = subparsers.add_parser("import-pairs", help="Import curated receptor/ligand pairs")
    pairs_parser.add_argument("file", help="CSV/TSV with p1_id,p1_name,p2_id,p2_name header")

    # status command
    status_parser = subparsers.add_parser("status", help="Show database status")
    status_parser.add_argument("--genes", nargs="*", help="Genes to check (default: TNF TNFRSF1A IL6 ACTB GAPDH)")

    # compare command
    compare_parser = subparsers.add_parser("compare", help="Score gene pairs against the Protein Atlas")
    compare_parser.add_argument("first", help="Comma-separated first genes (receptors)")
    compare_parser.add_argument("second", help="Comma-separated second genes (ligands)")
    compare_parser.add_argument("--page", type=int, default=1)
    compare_parser.add_argument("--page-size", type=int)
    compare_parser.add_argument("--top-k", type=int)
    compare_parser.add_argument(
        "--binarization", choices=[s.value for s in BinarizationStrategy]
    )
    compare_parser.add_argument("--strategy", choices=[s.value for s in CombineStrategy])

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "import-expression": cmd_import_expression,
        "import-pairs": cmd_import_pairs,
        "status": cmd_status,
        "compare": cmd_compare,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
