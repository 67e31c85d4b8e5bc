# Metadata Renamer
# A Python tool to rename image files by keywords found in their metadata

from .models import (
    Rule, PartialMatchSettings, MatchCandidate, ImageFile, ProcessingLimits, ProcessingStats
)
from .exceptions import (
    ProcessingError, ValidationError, FileOperationError, ExifReadError, ArchiveError
)
from .png_parser import parse_png_text_chunks
from .tokenizer import tokenize_keyword, calculate_partial_match_score
from .matcher import Matcher, select_candidate
from .file_namer import sanitize_file_name, derive_file_name, resolve_batch_names
from .path_validator import PathValidator
from .file_scanner import FileScanner
from .exif_reader import ExifReader
from .metadata_extractor import MetadataExtractor
from .rule_manager import RuleManager
from .image_collection import ImageCollection
from .exporter import Exporter
from .logger import ProgressLogger, LogConfig, create_default_logger, get_default_log_file
from .rename_manager import RenameManager

__all__ = [
    'Rule',
    'PartialMatchSettings',
    'MatchCandidate',
    'ImageFile',
    'ProcessingLimits',
    'ProcessingStats',
    'ProcessingError',
    'ValidationError',
    'FileOperationError',
    'ExifReadError',
    'ArchiveError',
    'parse_png_text_chunks',
    'tokenize_keyword',
    'calculate_partial_match_score',
    'Matcher',
    'select_candidate',
    'sanitize_file_name',
    'derive_file_name',
    'resolve_batch_names',
    'PathValidator',
    'FileScanner',
    'ExifReader',
    'MetadataExtractor',
    'RuleManager',
    'ImageCollection',
    'Exporter',
    'ProgressLogger',
    'LogConfig',
    'create_default_logger',
    'get_default_log_file',
    'RenameManager'
]
