from typing import List, Sequence

from ..models.memory_item import MemoryItem, MemoryKind, SearchResult

INTERACTIONS_HEADER = "Here are some relevant past interactions:\n\n"
REMINDERS_HEADER = "Important things to remember:\n\n"


def render_search_result(rank: int, result: SearchResult) -> str:
    """Render one retrieved document as a numbered context entry"""
    
    text = result.document.text
    kind = result.document.metadata.type
    
    if kind == MemoryKind.IMAGE_GENERATION:
        return (
            f'{rank}. User asked to generate: "{text}"\n'
            f'   You generated an image for them.\n\n'
        )
    if kind == MemoryKind.USER_MESSAGE:
        return f'{rank}. User previously asked: "{text}"\n\n'
    if kind == MemoryKind.ASSISTANT_RESPONSE:
        return f'{rank}. You previously responded: "{text}"\n\n'
    if kind == MemoryKind.FACT:
        return f'{rank}. Remembered fact: "{text}"\n\n'
    raise ValueError(f"Unhandled memory kind: {kind}")


def render_reminder(item: MemoryItem) -> str:
    """Render a long-term image generation as a reminder line"""
    
    return f'- User has previously generated images with the prompt: "{item.text}"\n'


def compose_context(results: Sequence[SearchResult], recent_long_term: Sequence[MemoryItem]) -> str:
    """Format retrieved documents and long-term reminders into one context block
    
    Returns an empty string when there is nothing relevant to say.
    """
    
    parts: List[str] = []
    
    if results:
        parts.append(INTERACTIONS_HEADER)
        for rank, result in enumerate(results, start=1):
            parts.append(render_search_result(rank, result))
            
    reminders = [
        render_reminder(item) for item in recent_long_term
        if item.kind == MemoryKind.IMAGE_GENERATION
    ]
    if reminders:
        parts.append(REMINDERS_HEADER)
        parts.extend(reminders)
        
    return "".join(parts)
