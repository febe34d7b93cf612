"""Document ingestion: extraction, normalisation and type-aware segmentation."""

from .models import PageContent, PreparedDocument, SegmentedChunk
from .pipeline import IngestPipeline, IngestPipelineConfig, parse_document_type
from .segmenter import DocumentSegmenter, SegmenterConfig, segment

__all__ = [
    "DocumentSegmenter",
    "IngestPipeline",
    "IngestPipelineConfig",
    "PageContent",
    "PreparedDocument",
    "SegmentedChunk",
    "SegmenterConfig",
    "parse_document_type",
    "segment",
]
