from docflow.ai.analyzer import DocumentAnalyzer
from docflow.ai.data_extractor import DataExtractor
from docflow.ai.factory import AIProviderFactory
from docflow.ai.provider import AIProvider

__all__ = ["AIProvider", "AIProviderFactory", "DataExtractor", "DocumentAnalyzer"]
