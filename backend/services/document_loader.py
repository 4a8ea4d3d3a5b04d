"""Document loading service for plain-text and Markdown files."""
import logging
import os
from typing import List

from models.document import DocumentInput

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".txt", ".md")


class DocumentLoader:
    """Loads text documents from a directory."""

    def __init__(self, docs_directory: str = "documents"):
        """
        Initialize DocumentLoader.

        Args:
            docs_directory: Path to directory containing .txt / .md files
        """
        self.docs_directory = docs_directory

    def load_documents(self) -> List[DocumentInput]:
        """
        Load all supported files from the documents directory.

        Files are read in name order so chunk ids are reproducible.
        Files that are not valid UTF-8 are skipped.

        Returns:
            List of DocumentInput objects named after their file
        """
        documents = []

        if not os.path.isdir(self.docs_directory):
            logger.error(f"Documents directory not found: {self.docs_directory}")
            return documents

        text_files = [
            f for f in os.listdir(self.docs_directory)
            if f.lower().endswith(SUPPORTED_EXTENSIONS)
        ]
        logger.info(f"Found {len(text_files)} text files in {self.docs_directory}")

        for filename in sorted(text_files):
            filepath = os.path.join(self.docs_directory, filename)

            try:
                with open(filepath, encoding="utf-8") as f:
                    text = f.read()
            except (UnicodeDecodeError, OSError) as e:
                logger.error(f"Error loading {filename}: {str(e)}")
                continue

            documents.append(DocumentInput(name=filename, text=text))
            logger.debug(f"Loaded {filename}: {len(text)} characters")

        logger.info(f"Successfully loaded {len(documents)} documents")
        return documents
