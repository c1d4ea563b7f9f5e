"""Language grammar configuration and detection for tree-sitter."""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class LanguageConfig:
    """Configuration for a programming language."""

    def __init__(
        self,
        name: str,
        extensions: List[str],
        tree_sitter_language: str,
        function_types: Dict[str, Dict],
        wrapper_types: Dict[str, Dict],
        comment_types: List[str],
        doc_comment_prefix: str,
    ):
        """Initialize language configuration.

        Args:
            name: Language name (javascript, typescript)
            extensions: List of file extensions
            tree_sitter_language: Tree-sitter language identifier
            function_types: AST node types that declare a top-level function
            wrapper_types: Statement node types that may wrap a function declaration
            comment_types: AST node types that hold comments
            doc_comment_prefix: Prefix that marks a comment as a documentation comment
        """
        self.name = name
        self.extensions = extensions
        self.tree_sitter_language = tree_sitter_language
        self.function_types = function_types
        self.wrapper_types = wrapper_types
        self.comment_types = comment_types
        self.doc_comment_prefix = doc_comment_prefix

    def is_function_node(self, node_type: str) -> bool:
        """Check if a node type declares a function.

        Args:
            node_type: AST node type

        Returns:
            True if this node type is a function declaration
        """
        return node_type in self.function_types

    def get_name_field(self, node_type: str) -> Optional[str]:
        """Get the field name that contains the identifier for this node type."""
        if node_type in self.function_types:
            return self.function_types[node_type].get("name_field")
        return None

    def get_parameters_field(self, node_type: str) -> Optional[str]:
        """Get the field name that contains the parameter list for this node type."""
        if node_type in self.function_types:
            return self.function_types[node_type].get("parameters_field")
        return None

    def get_declaration_field(self, node_type: str) -> Optional[str]:
        """Get the field of a wrapper statement that holds the wrapped declaration."""
        if node_type in self.wrapper_types:
            return self.wrapper_types[node_type].get("declaration_field")
        return None

    def is_doc_comment(self, node_type: str, text: str) -> bool:
        return node_type in self.comment_types and text.startswith(self.doc_comment_prefix)


class LanguageRegistry:
    """Registry of language configurations."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize language registry.

        Args:
            config_path: Path to languages.json config file
        """
        if config_path is None:
            # Default to config/languages.json relative to project root
            config_path = Path(__file__).parent.parent.parent / "config" / "languages.json"

        self.config_path = config_path
        self.languages: Dict[str, LanguageConfig] = {}
        self.extension_map: Dict[str, str] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load language configurations from JSON file."""
        try:
            with open(self.config_path, "r") as f:
                config_data = json.load(f)

            for lang_name, lang_config in config_data.items():
                language = LanguageConfig(
                    name=lang_name,
                    extensions=lang_config["extensions"],
                    tree_sitter_language=lang_config["tree_sitter_language"],
                    function_types=lang_config["function_types"],
                    wrapper_types=lang_config.get("wrapper_types", {}),
                    comment_types=lang_config["comment_types"],
                    doc_comment_prefix=lang_config.get("doc_comment_prefix", "/**"),
                )
                self.languages[lang_name] = language

                # Build extension to language mapping
                for ext in language.extensions:
                    self.extension_map[ext] = lang_name

            logger.info(f"Loaded {len(self.languages)} language configurations")

        except Exception as e:
            logger.error(f"Error loading language config from {self.config_path}: {e}")
            raise

    def detect_language(self, file_path: str) -> Optional[str]:
        """Detect programming language from file extension.

        Args:
            file_path: Path to the file

        Returns:
            Language name or None if not recognized
        """
        extension = Path(file_path).suffix.lower()

        if extension in self.extension_map:
            return self.extension_map[extension]

        logger.debug(f"Unknown file extension: {extension}")
        return None

    def get_language_config(self, language: str) -> Optional[LanguageConfig]:
        """Get configuration for a specific language."""
        return self.languages.get(language)

    def get_supported_languages(self) -> List[str]:
        return list(self.languages.keys())

    def get_supported_extensions(self) -> List[str]:
        return list(self.extension_map.keys())

    def is_supported_file(self, file_path: str) -> bool:
        """Check if a file is supported for synchronization.

        Args:
            file_path: Path to the file

        Returns:
            True if file is supported
        """
        return self.detect_language(file_path) is not None


# Global registry instance
_registry: Optional[LanguageRegistry] = None


def get_language_registry(config_path: Optional[Path] = None) -> LanguageRegistry:
    """Get the global language registry instance.

    Args:
        config_path: Path to config file (only used on first call)

    Returns:
        Language registry instance
    """
    global _registry
    if _registry is None:
        _registry = LanguageRegistry(config_path)
    return _registry
