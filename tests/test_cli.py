"""
Tests for the command-line interface.
"""

import json
from unittest.mock import patch

import pytest

from coexpression_data.cli import main
from coexpression_data.external.protein_atlas import ProteinAtlasClient


@pytest.fixture
def patched_atlas(fetcher):
    async def get_expression_profile(self, gene_id):
        return await fetcher(gene_id)

    with patch.object(ProteinAtlasClient, "get_expression_profile", get_expression_profile):
        yield fetcher


class TestCompareCommand:
    def test_prints_ranked_batch(self, patched_atlas, capsys):
        assert main(["compare", "TNF", "TNFRSF1A,IL6", "--top-k", "2"]) == 0

        batch = json.loads(capsys.readouterr().out)
        assert batch["page"] == 1
        assert [r["pair"]["pair_id"] for r in batch["results"]] == ["TNF-TNFRSF1A", "TNF-IL6"]
        assert patched_atlas.calls == ["TNF", "TNFRSF1A", "TNF", "IL6"]

    def test_all_failed_exits_nonzero(self, patched_atlas, capsys):
        assert main(["compare", "NOPE", "ALSO_NOPE"]) == 1
        assert "error" in json.loads(capsys.readouterr().out)

    def test_blank_list_rejected(self, patched_atlas):
        assert main(["compare", " , ", "IL6"]) == 1
        assert patched_atlas.calls == []

    def test_explicit_zero_top_k_is_respected(self, patched_atlas, capsys):
        assert main(["compare", "TNF", "TNFRSF1A", "--top-k", "0"]) == 0

        features = json.loads(capsys.readouterr().out)["results"][0]["features"]
        assert features["tissue"]["shared_top_k_count"] == 0
        assert features["cell"]["shared_top_k_count"] == 0
        assert features["combined"]["common_types"] > 0

    def test_omitted_top_k_uses_setting(self, patched_atlas, capsys):
        assert main(["compare", "TNF", "TNFRSF1A"]) == 0

        features = json.loads(capsys.readouterr().out)["results"][0]["features"]
        assert features["tissue"]["shared_top_k_count"] == features["tissue"]["common_types"]

    def test_invalid_strategy(self):
        with pytest.raises(SystemExit):
            main(["compare", "TNF", "IL6", "--strategy", "median"])


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()
