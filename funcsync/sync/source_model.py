"""Tree-sitter backed source model: top-level functions and their doc comments."""

import logging
from typing import Any, Dict, List, Optional

import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Parser

from .annotations import parse_tags
from .exceptions import ParseFailure
from .grammars import LanguageConfig, LanguageRegistry, get_language_registry
from .models import DocComment, FunctionUnit, SourceUnit

logger = logging.getLogger(__name__)


class SourceModel:
    """Parse source files into immutable units and apply copy-on-write edits."""

    # Language module mapping
    LANGUAGE_MODULES = {
        "javascript": tsjavascript,
        "typescript": tstypescript,
    }

    # Modules that use non-standard language function names
    LANGUAGE_FUNCTION_OVERRIDES = {
        "typescript": "language_typescript",
    }

    def __init__(self, registry: Optional[LanguageRegistry] = None):
        """Initialize the source model.

        Args:
            registry: Language registry (defaults to the global registry)
        """
        self.registry = registry or get_language_registry()
        self.parsers: Dict[str, Parser] = {}
        self.languages: Dict[str, Language] = {}
        self._init_languages()

    def _init_languages(self) -> None:
        """Initialize tree-sitter languages."""
        for lang_name in self.registry.get_supported_languages():
            lang_config = self.registry.get_language_config(lang_name)
            if not lang_config:
                continue

            ts_lang_name = lang_config.tree_sitter_language

            module = self.LANGUAGE_MODULES.get(ts_lang_name)
            if not module:
                logger.warning(f"No module found for language: {ts_lang_name}")
                continue

            lang_func_name = self.LANGUAGE_FUNCTION_OVERRIDES.get(ts_lang_name, "language")
            lang_func = getattr(module, lang_func_name, None)
            if not lang_func:
                logger.warning(f"Module {ts_lang_name} has no function '{lang_func_name}'")
                continue

            language = Language(lang_func())
            self.languages[lang_name] = language

            parser = Parser()
            parser.language = language
            self.parsers[lang_name] = parser

            logger.debug(f"Initialized parser for {lang_name}")

    def parse(self, source: bytes, path: str) -> SourceUnit:
        """Parse source bytes into a SourceUnit.

        Args:
            source: Raw file contents
            path: Workspace path of the file (used for language detection and errors)

        Returns:
            Parsed source unit

        Raises:
            ParseFailure: If the language is unsupported or the text has syntax errors
        """
        language = self.registry.detect_language(path)
        if not language or language not in self.parsers:
            raise ParseFailure(path, "unsupported file type")

        lang_config = self.registry.get_language_config(language)
        tree = self.parsers[language].parse(source)
        root_node = tree.root_node

        if root_node.has_error:
            raise ParseFailure(path, "syntax errors in source")

        functions = self._extract_functions(root_node, lang_config)
        logger.debug(f"Parsed {path}: {len(functions)} top-level functions")

        return SourceUnit(
            path=path,
            language=language,
            source=source,
            functions=tuple(functions),
        )

    def _extract_functions(self, root_node: Any, lang_config: LanguageConfig) -> List[FunctionUnit]:
        functions = []
        for statement in root_node.children:
            declaration = self._function_declaration(statement, lang_config)
            if declaration is None:
                continue

            name_node = declaration.child_by_field_name(
                lang_config.get_name_field(declaration.type) or "name"
            )
            if name_node is None:
                continue

            functions.append(
                FunctionUnit(
                    name=name_node.text.decode("utf-8"),
                    arity=self._count_parameters(declaration, lang_config),
                    node_type=statement.type,
                    start_byte=statement.start_byte,
                    end_byte=statement.end_byte,
                    start_line=statement.start_point[0] + 1,
                    doc=self._doc_comment(statement, lang_config),
                )
            )
        return functions

    def _function_declaration(self, statement: Any, lang_config: LanguageConfig) -> Optional[Any]:
        """Return the function node declared by a top-level statement, if any."""
        if lang_config.is_function_node(statement.type):
            return statement

        # export function foo() {} wraps the declaration
        declaration_field = lang_config.get_declaration_field(statement.type)
        if declaration_field:
            declaration = statement.child_by_field_name(declaration_field)
            if declaration is not None and lang_config.is_function_node(declaration.type):
                return declaration
        return None

    def _count_parameters(self, declaration: Any, lang_config: LanguageConfig) -> int:
        field_name = lang_config.get_parameters_field(declaration.type)
        parameters = declaration.child_by_field_name(field_name) if field_name else None
        if parameters is None:
            return 0
        return sum(
            1 for child in parameters.named_children if child.type not in lang_config.comment_types
        )

    def _doc_comment(self, statement: Any, lang_config: LanguageConfig) -> Optional[DocComment]:
        """Return the documentation comment immediately preceding a statement."""
        previous = statement.prev_sibling
        if previous is None:
            return None

        text = previous.text.decode("utf-8")
        if not lang_config.is_doc_comment(previous.type, text):
            return None

        return DocComment(
            text=text,
            start_byte=previous.start_byte,
            end_byte=previous.end_byte,
            end_line=previous.end_point[0] + 1,
            tags=parse_tags(text),
        )

    def remove_function(self, unit: SourceUnit, function: FunctionUnit) -> SourceUnit:
        """Return a new unit without the given function and its doc comment.

        Whitespace following the removed span is dropped as well; when the
        function was the last statement the file ends with a single newline.
        """
        head = unit.source[: function.span_start]
        tail = unit.source[function.end_byte :].lstrip(b" \t\r\n")

        if not tail:
            head = head.rstrip()
            source = head + b"\n" if head else b""
        else:
            source = head + tail

        return self.parse(source, unit.path)

    def append_function(self, unit: SourceUnit, function_text: str) -> SourceUnit:
        """Return a new unit with function_text appended as the last statement."""
        head = unit.source.rstrip()
        prefix = head + b"\n\n" if head else b""
        return self.parse(prefix + function_text.encode("utf-8") + b"\n", unit.path)

    @staticmethod
    def serialize(unit: SourceUnit) -> str:
        return unit.text
