from .errors import AnalysisCancelled, AnalysisError, ConfigurationError, JsonParseError, PageRenderError, TakeoffError
from .json_repair import clean_and_repair_json
from .key_pages import identify_key_pages, resolve_key_pages
from .models import (
    ExtractionResult,
    InventoryItem,
    KeyPage,
    KeyPageCategory,
    ProjectSettings,
    Provenance,
    SourceImage,
    TypeDefinition,
)
from .orchestrator import TakeoffAnalyzer
from .project import ProjectState, assign_manual_crop, merge_catalogs
from .visuals import process_visuals

__version__ = "0.1.0"
