"""IO subpackage: CSV export and periodic autosave."""
from .export import CsvExporter, load_export, read_export
from .autosave import AutosaveScheduler
