"""
Tests for the PostgreSQL repositories against a mocked connection.
"""

from unittest.mock import MagicMock

import psycopg
import pytest

from coexpression_data.core.errors import CollaboratorUnavailableError
from coexpression_data.core.models import EntityPair
from coexpression_data.core.types import Axis, QueryType
from coexpression_data.repositories import (
    PostgresExpressionRepository,
    PostgresPairRepository,
    row_to_observation,
)

ROW = {
    "gene": "ENSG01",
    "gene_name": "TNF",
    "tissue": "liver",
    "cluster": None,
    "cell_type": "hepatocytes",
    "ntpm": 1.5,
}


class TestExpressionRepository:
    def test_row_mapping(self):
        record = row_to_observation(ROW)
        assert record.entity_id == "ENSG01"
        assert record.cell_category == "hepatocytes"
        assert record.cluster_label == ""

    def test_identifiers_are_lowercased(self):
        db = MagicMock()
        db.fetchall.return_value = [ROW]
        records = PostgresExpressionRepository(db).fetch_observations(["TNF", " Il6 "])

        assert records[0].entity_display_name == "TNF"
        query, params = db.fetchall.call_args.args
        assert "LOWER(gene) = ANY(%s)" in query
        assert params == (["tnf", "il6"], ["tnf", "il6"])

    def test_category_filter(self):
        db = MagicMock()
        db.fetchall.return_value = []
        PostgresExpressionRepository(db).fetch_observations(["TNF"], Axis.cell, ["hepatocytes"])

        query, params = db.fetchall.call_args.args
        assert "cell_type = ANY(%s)" in query
        assert params[-1] == ["hepatocytes"]

    def test_blank_identifiers_skip_the_query(self):
        db = MagicMock()
        assert PostgresExpressionRepository(db).fetch_observations(["", "  "]) == []
        db.fetchall.assert_not_called()

    def test_database_error_is_unavailable(self):
        db = MagicMock()
        db.fetchall.side_effect = psycopg.OperationalError("connection refused")
        with pytest.raises(CollaboratorUnavailableError):
            PostgresExpressionRepository(db).fetch_observations(["TNF"])

    def test_insert_rows_uses_copy(self):
        db = MagicMock()
        db.copy_rows.return_value = 1
        row = ("ENSG01", "TNF", "liver", "c-0", "hepatocytes", 10, 1.5)

        assert PostgresExpressionRepository(db).insert_rows([row]) == 1
        table, columns, rows = db.copy_rows.call_args.args
        assert table == "expression_data"
        assert columns[-1] == "ntpm"
        assert list(rows) == [row]

    def test_count_gene_records(self):
        db = MagicMock()
        db.fetchone.return_value = {"count": 42}
        assert PostgresExpressionRepository(db).count_gene_records("TNF") == 42


class TestPairRepository:
    def test_receptor_lookup_uses_p1(self):
        db = MagicMock()
        db.fetchall.return_value = [
            {"p1_id": "P19438", "p1_name": "TNFRSF1A", "p2_id": "P01375", "p2_name": "TNF"}
        ]
        pairs = PostgresPairRepository(db).find_pairs("TNFRSF1A", QueryType.receptor)

        assert pairs[0].pair_id == "P19438-P01375"
        query, params = db.fetchall.call_args.args
        assert "p1_id = %s OR p1_name ILIKE %s" in query
        assert params == ("TNFRSF1A", "%TNFRSF1A%")

    def test_like_wildcards_are_escaped(self):
        db = MagicMock()
        db.fetchall.return_value = []
        PostgresPairRepository(db).find_pairs("IL_6%", QueryType.ligand)

        query, params = db.fetchall.call_args.args
        assert "p2_name ILIKE" in query
        assert params[1] == "%IL\\_6\\%%"

    def test_database_error_is_unavailable(self):
        db = MagicMock()
        db.fetchall.side_effect = psycopg.OperationalError("connection refused")
        with pytest.raises(CollaboratorUnavailableError):
            PostgresPairRepository(db).find_pairs("TNF", QueryType.ligand)

    def test_upsert(self):
        db = MagicMock()
        written = PostgresPairRepository(db).upsert_pairs(
            [EntityPair(p1_id="A", p1_name="a", p2_id="B", p2_name="b")]
        )
        assert written == 1
        assert db.executemany.call_args.args[1] == [("A", "a", "B", "b")]
