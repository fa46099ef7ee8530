import logging
from typing import List, Sequence, Set

from pdf_stream_annotator.core.types import CommandMatch
from pdf_stream_annotator.parsing.grammar import GRAMMAR, GrammarRule, read_values

logger = logging.getLogger(__name__)


def resolve_commands(text: str, current_page: int, rules: Sequence[GrammarRule] = GRAMMAR) -> List[CommandMatch]:
    """Resolve every bracket command in ``text`` to exactly one grammar rule.

    Rules are tried in table order over the whole text. A substring rejected by
    a rule's predicate stays available to later rules; once a rule accepts a
    substring, identical text is never resolved again. The result is ordered
    by position in ``text``.
    """
    seen: Set[str] = set()
    resolved: List[CommandMatch] = []

    for rule in rules:
        for match in rule.pattern.finditer(text):
            raw = match.group(0)
            if raw in seen:
                continue
            read = read_values(rule, match, current_page)
            if read is None:
                continue
            values, color = read
            if rule.accept is not None and not rule.accept(values):
                logger.debug(f"Rule {rule.kind}/{rule.name} declined {raw!r}: {values}")
                continue
            seen.add(raw)
            resolved.append(CommandMatch(
                raw=raw,
                kind=rule.kind,
                variant=rule.name,
                start=match.start(),
                color=color,
                **values,
            ))
            if values["page"] > 20:
                logger.warning(f"{rule.kind.capitalize()} page looks high ({values['page']}): {raw!r}")

    resolved.sort(key=lambda command: command.start)
    return resolved
