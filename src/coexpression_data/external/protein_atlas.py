"""
Human Protein Atlas client.

Fetches a gene's tissue (bulk RNA) and single-cell-type nTPM values from
the search download endpoint (https://www.proteinatlas.org/api/search_download.php)
and turns the first matching entry into an EntityProfile.
"""

import logging
import math
from typing import Any, Optional

import httpx

from ..core.config import Settings, get_settings
from ..core.http import BaseApiClient
from ..core.models import EntityProfile

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/search_download.php"

TISSUE_PREFIX = "Tissue RNA - "
CELL_PREFIX = "Single Cell Type RNA - "
VALUE_SUFFIX = " [nTPM]"

# Column codes requested from the download endpoint. Response keys use the
# human-readable form, e.g. t_RNA_heart_muscle -> "Tissue RNA - heart muscle [nTPM]".
TISSUE_COLUMNS = [
    "t_RNA_adipose_tissue", "t_RNA_adrenal_gland", "t_RNA_amygdala", "t_RNA_appendix",
    "t_RNA_basal_ganglia", "t_RNA_bone_marrow", "t_RNA_breast", "t_RNA_cerebellum",
    "t_RNA_cerebral_cortex", "t_RNA_cervix", "t_RNA_choroid_plexus", "t_RNA_colon",
    "t_RNA_duodenum", "t_RNA_endometrium_1", "t_RNA_epididymis", "t_RNA_esophagus",
    "t_RNA_fallopian_tube", "t_RNA_gallbladder", "t_RNA_heart_muscle",
    "t_RNA_hippocampal_formation", "t_RNA_hypothalamus", "t_RNA_kidney", "t_RNA_liver",
    "t_RNA_lung", "t_RNA_lymph_node", "t_RNA_midbrain", "t_RNA_ovary", "t_RNA_pancreas",
    "t_RNA_parathyroid_gland", "t_RNA_pituitary_gland", "t_RNA_placenta", "t_RNA_prostate",
    "t_RNA_rectum", "t_RNA_retina", "t_RNA_salivary_gland", "t_RNA_seminal_vesicle",
    "t_RNA_skeletal_muscle", "t_RNA_skin_1", "t_RNA_small_intestine", "t_RNA_smooth_muscle",
    "t_RNA_spinal_cord", "t_RNA_spleen", "t_RNA_stomach_1", "t_RNA_testis", "t_RNA_thymus",
    "t_RNA_thyroid_gland", "t_RNA_tongue", "t_RNA_tonsil", "t_RNA_urinary_bladder",
    "t_RNA_vagina",
]

CELL_TYPE_COLUMNS = [
    "sc_RNA_Adipocytes", "sc_RNA_Alveolar_cells_type_1", "sc_RNA_Alveolar_cells_type_2",
    "sc_RNA_Astrocytes", "sc_RNA_B-cells", "sc_RNA_Basal_keratinocytes",
    "sc_RNA_Basal_prostatic_cells", "sc_RNA_Basal_respiratory_cells",
    "sc_RNA_Basal_squamous_epithelial_cells", "sc_RNA_Bipolar_cells",
    "sc_RNA_Breast_glandular_cells", "sc_RNA_Breast_myoepithelial_cells",
    "sc_RNA_Cardiomyocytes", "sc_RNA_Cholangiocytes", "sc_RNA_Ciliated_cells",
    "sc_RNA_Club_cells", "sc_RNA_Collecting_duct_cells", "sc_RNA_Cone_photoreceptor_cells",
    "sc_RNA_Cytotrophoblasts", "sc_RNA_dendritic_cells", "sc_RNA_Distal_enterocytes",
    "sc_RNA_Distal_tubular_cells", "sc_RNA_Ductal_cells", "sc_RNA_Early_spermatids",
    "sc_RNA_Endometrial_stromal_cells", "sc_RNA_Endothelial_cells",
    "sc_RNA_Enteroendocrine_cells", "sc_RNA_Erythroid_cells", "sc_RNA_Excitatory_neurons",
    "sc_RNA_Exocrine_glandular_cells", "sc_RNA_Extravillous_trophoblasts",
    "sc_RNA_Fibroblasts", "sc_RNA_Gastric_mucus-secreting_cells",
    "sc_RNA_Glandular_and_luminal_cells", "sc_RNA_granulocytes", "sc_RNA_Granulosa_cells",
    "sc_RNA_Hepatocytes", "sc_RNA_Hofbauer_cells", "sc_RNA_Horizontal_cells",
    "sc_RNA_Inhibitory_neurons", "sc_RNA_Intestinal_goblet_cells", "sc_RNA_Ionocytes",
    "sc_RNA_Kupffer_cells", "sc_RNA_Langerhans_cells", "sc_RNA_Late_spermatids",
    "sc_RNA_Leydig_cells", "sc_RNA_Lymphatic_endothelial_cells", "sc_RNA_Macrophages",
    "sc_RNA_Melanocytes", "sc_RNA_Mesothelial_cells", "sc_RNA_Microglial_cells",
    "sc_RNA_monocytes", "sc_RNA_Mucus_glandular_cells", "sc_RNA_Muller_glia_cells",
    "sc_RNA_NK-cells", "sc_RNA_Oligodendrocyte_precursor_cells", "sc_RNA_Oligodendrocytes",
    "sc_RNA_Oocytes", "sc_RNA_Ovarian_stromal_cells", "sc_RNA_Pancreatic_endocrine_cells",
    "sc_RNA_Paneth_cells", "sc_RNA_Peritubular_cells", "sc_RNA_Plasma_cells",
    "sc_RNA_Prostatic_glandular_cells", "sc_RNA_Proximal_enterocytes",
    "sc_RNA_Proximal_tubular_cells", "sc_RNA_Rod_photoreceptor_cells",
    "sc_RNA_Salivary_duct_cells", "sc_RNA_Schwann_cells", "sc_RNA_Secretory_cells",
    "sc_RNA_Serous_glandular_cells", "sc_RNA_Sertoli_cells", "sc_RNA_Skeletal_myocytes",
    "sc_RNA_Smooth_muscle_cells", "sc_RNA_Spermatocytes", "sc_RNA_Spermatogonia",
    "sc_RNA_Squamous_epithelial_cells", "sc_RNA_Suprabasal_keratinocytes",
    "sc_RNA_Syncytiotrophoblasts", "sc_RNA_T-cells", "sc_RNA_Undifferentiated_cells",
]

IDENTITY_COLUMNS = ["g", "gs", "up"]


def _parse_intensity(value: Any) -> float:
    """nTPM cell value as float; blanks and garbage read as 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) and number >= 0 else 0.0


def _extract(entry: dict[str, Any], prefix: str) -> dict[str, float]:
    return {
        key[len(prefix):-len(VALUE_SUFFIX)]: _parse_intensity(value)
        for key, value in entry.items()
        if key.startswith(prefix) and key.endswith(VALUE_SUFFIX)
    }


def _uniprot_ids(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v) for v in value]


def parse_profile(gene_id: str, entry: dict[str, Any]) -> EntityProfile:
    """Build an EntityProfile from one search_download.php JSON entry."""
    return EntityProfile(
        entity_id=gene_id,
        display_name=entry.get("Gene") or gene_id,
        uniprot_ids=_uniprot_ids(entry.get("Uniprot")),
        tissue=_extract(entry, TISSUE_PREFIX),
        cell=_extract(entry, CELL_PREFIX),
    )


class ProteinAtlasClient(BaseApiClient):
    """
    Human Protein Atlas expression profile client.

    Usage:
        async with ProteinAtlasClient.from_settings() as client:
            profile = await client.get_expression_profile("TNF")
    """

    BASE_URL = "https://www.proteinatlas.org"

    def __init__(
        self,
        base_url: Optional[str] = None,
        requests_per_minute: int = 120,
        timeout: float = 30.0,
        max_retries: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            base_url=base_url,
            headers={"Accept": "application/json"},
            requests_per_minute=requests_per_minute,
            timeout=timeout,
            max_retries=max_retries,
            http_client=http_client,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ProteinAtlasClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.hpa_base_url,
            requests_per_minute=settings.hpa_requests_per_minute,
            timeout=settings.hpa_timeout,
            max_retries=settings.hpa_max_retries,
        )

    async def search(self, query: str) -> list[dict[str, Any]]:
        """Raw search_download.php entries for a gene name or UniProt ID."""
        params = {
            "search": query,
            "format": "json",
            "columns": ",".join(IDENTITY_COLUMNS + TISSUE_COLUMNS + CELL_TYPE_COLUMNS),
            "compress": "no",
        }
        data = await self._get(SEARCH_PATH, params)
        return data if isinstance(data, list) else []

    async def get_expression_profile(self, gene_id: str) -> Optional[EntityProfile]:
        """
        Fetch one gene's expression profile.

        Returns:
            EntityProfile from the first matching entry, or None when the
            search returns nothing

        Raises:
            ExternalAPIError: On transport or HTTP failure after retries
        """
        entries = await self.search(gene_id)
        if not entries:
            logger.info("No Protein Atlas entry for %s", gene_id)
            return None

        profile = parse_profile(gene_id, entries[0])
        logger.debug(
            "Fetched %s (%s): %d tissues, %d cell types",
            gene_id, profile.display_name, len(profile.tissue), len(profile.cell),
        )
        return profile
