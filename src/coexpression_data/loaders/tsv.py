"""
Loaders for the expression store.

Expression TSV (Human Protein Atlas ``rna_single_cell_type_tissue.tsv``):
    Gene  Gene name  Tissue  Cluster  Cell type  Read count  nTPM
    ENSG00000000003  TSPAN6  adipose tissue  c-0  adipocytes  415  18.6

Older exports omit the read count column; the nTPM value is then the sixth
field. Lines with fewer than six fields are skipped.

Pair CSV/TSV (header required):
    p1_id,p1_name,p2_id,p2_name
    P01375,TNF,P19438,TNFRSF1A
"""

from __future__ import annotations

import csv
import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional

from ..core.models import EntityPair
from ..core.types import EXPRESSION_TABLE

if TYPE_CHECKING:
    from ..repositories.expression import PostgresExpressionRepository
    from ..repositories.pairs import PostgresPairRepository

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000
MIN_FIELDS = 6
PROGRESS_EVERY = 100_000

# (gene, gene_name, tissue, cluster, cell_type, read_count, ntpm)
ExpressionRow = tuple[str, str, str, str, str, Optional[int], float]


def _parse_number(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) and number >= 0 else 0.0


def parse_expression_line(line: str) -> Optional[ExpressionRow]:
    """
    Parse one data line of the expression TSV.

    Returns:
        Row tuple ready for insertion, or None when the line is malformed
    """
    values = line.rstrip("\r\n").split("\t")
    if len(values) < MIN_FIELDS or not values[0].strip():
        return None

    gene, gene_name, tissue, cluster, cell_type = (v.strip() for v in values[:5])
    if len(values) > MIN_FIELDS:
        try:
            read_count: Optional[int] = int(float(values[5]))
        except ValueError:
            read_count = None
        ntpm = _parse_number(values[6])
    else:
        read_count = None
        ntpm = _parse_number(values[5])

    return gene, gene_name or gene, tissue, cluster, cell_type, read_count, ntpm


def iter_expression_rows(file_path: str | Path, summary: dict[str, int]) -> Iterator[ExpressionRow]:
    """Stream parsed rows, counting lines and skips into ``summary``."""
    with open(file_path, encoding="utf-8") as f:
        header = f.readline()
        logger.debug("Header: %s", header.strip())

        for line_num, line in enumerate(f, start=2):
            summary["lines"] += 1
            if line_num % PROGRESS_EVERY == 0:
                logger.info("Processed %d lines...", line_num)
            if not line.strip():
                continue

            row = parse_expression_line(line)
            if row is None:
                logger.warning("Skipping invalid line %d: %s", line_num, line.strip()[:120])
                summary["skipped"] += 1
                continue
            yield row


class ExpressionLoader:
    """Load the expression TSV into the expression_data table."""

    def __init__(self, repository: "PostgresExpressionRepository"):
        self.repository = repository

    def load(
        self,
        file_path: str | Path,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clear_existing: bool = False,
    ) -> dict[str, int]:
        """
        Stream the TSV into the database in batches.

        Args:
            file_path: Path to the TSV file
            batch_size: Rows per INSERT batch
            clear_existing: If True, delete all existing observations first

        Returns:
            Summary with counts: {"lines": N, "inserted": N, "skipped": N}
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"TSV file not found: {file_path}")

        if clear_existing:
            logger.info("Clearing existing expression data...")
            self.repository.db.execute(f"DELETE FROM {EXPRESSION_TABLE}")

        summary = {"lines": 0, "inserted": 0, "skipped": 0}
        batch: list[ExpressionRow] = []

        for row in iter_expression_rows(file_path, summary):
            batch.append(row)
            if len(batch) >= batch_size:
                summary["inserted"] += self.repository.insert_rows(batch)
                logger.debug("Inserted batch: %d total", summary["inserted"])
                batch = []

        if batch:
            summary["inserted"] += self.repository.insert_rows(batch)

        logger.info(
            "Imported %d records from %s (%d lines, %d skipped)",
            summary["inserted"], file_path.name, summary["lines"], summary["skipped"],
        )
        return summary


def read_pairs(file_path: str | Path) -> tuple[list[EntityPair], int]:
    """
    Read curated pairs from a CSV or TSV file with a header row.

    Returns:
        (pairs, skipped row count)
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Pair file not found: {file_path}")

    delimiter = "\t" if file_path.suffix.lower() in (".tsv", ".tab") else ","
    pairs: list[EntityPair] = []
    skipped = 0

    with open(file_path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f, delimiter=delimiter)
        for row_num, row in enumerate(reader, start=2):
            p1_id = (row.get("p1_id") or "").strip()
            p2_id = (row.get("p2_id") or "").strip()
            if not p1_id or not p2_id:
                logger.warning("Skipping pair row %d: missing p1_id/p2_id", row_num)
                skipped += 1
                continue
            pairs.append(
                EntityPair(
                    p1_id=p1_id,
                    p1_name=(row.get("p1_name") or "").strip() or p1_id,
                    p2_id=p2_id,
                    p2_name=(row.get("p2_name") or "").strip() or p2_id,
                )
            )

    return pairs, skipped


def load_pairs(file_path: str | Path, repository: "PostgresPairRepository") -> dict[str, int]:
    """Upsert curated pairs from a file. Returns {"loaded": N, "skipped": N}."""
    pairs, skipped = read_pairs(file_path)
    loaded = repository.upsert_pairs(pairs)
    logger.info("Loaded %d pairs (%d skipped)", loaded, skipped)
    return {"loaded": loaded, "skipped": skipped}
