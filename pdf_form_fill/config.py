"""
Configuration settings for the PDF form fill engine.
Consolidates all constants and configuration in one place.
"""

# PDF Validation
PDF_MAGIC = b"%PDF"

# Update Scheduling
FIRST_FILL_DELAY = 0.5  # Debounce before the first fill cycle (pays the initial re-parse)
FILL_DELAY = 0.3  # Debounce for subsequent cycles

# Image Embedding
IMAGE_MAX_WIDTH = 150
IMAGE_MAX_HEIGHT = 50
IMAGE_TOP_OFFSET = 20  # Distance from the page's top edge to the image's top edge

# Field Label Hints
LABEL_SEARCH_RADIUS = 36  # points above a widget searched when no same-line label exists
LABEL_LINE_TOLERANCE = 4
LABEL_MAX_LENGTH = 80

# Output Storage
OUTPUT_DIR = "tmp_outputs"

# Logging Configuration
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
FILL_CYCLE_LOG_FILE = 'fill_cycles.log'

# Error Messages
ERROR_MESSAGES = {
    'empty_source': 'Document source returned no bytes',
    'invalid_format': 'Not a PDF file',
    'encrypted_pdf': 'Encrypted PDF not supported',
    'parse_failed': 'Failed to parse PDF',
    'no_valid_source': 'No document source yielded a valid PDF',
    'unsupported_image': 'Image must be PNG or JPEG',
    'serialization_failed': 'Failed to serialize PDF',
    'field_assignment': 'Field value could not be applied',
}
