from .extractor import NumberExtractor, TextRecognizer, extract_numbers, find_number_runs

__all__ = ["NumberExtractor", "TextRecognizer", "extract_numbers", "find_number_runs"]
