from typing import Iterable

from app.chat.entity.chat import Persona
from app.knowledge.entity.knowledge import KnowledgeItem


EMPTY_KNOWLEDGE_MARKER = "The knowledge base is empty."

PERSONA_DIRECTIVES = {
    Persona.GENERAL: "You are Business Mind, a general-purpose business assistant.",
    Persona.STRATEGIST: (
        "You are the Strategist. Think long term, look for growth levers, weigh competitive "
        "advantages and risks. Use mental models."
    ),
    Persona.MARKETER: (
        "You are the Marketer. Focus on the customer, positioning, sales funnels, copywriting "
        "and consumer psychology."
    ),
    Persona.INVESTOR: (
        "You are the Investor. Be pragmatic. Judge ROI, scalability, unit economics and exit strategies."
    ),
    Persona.SKEPTIC: (
        "You are the Skeptic. Find weak spots, ask uncomfortable questions and red-team the user's ideas."
    ),
}

BUSINESS_MIND_SYSTEM_PROMPT = """You are Business Mind. Your mission is to sharpen an entrepreneur's thinking by connecting it with their own knowledge.
You have access to the user's "second brain" (their knowledge base).
Answer questions using the knowledge base whenever it is relevant.
When a book or note from the knowledge base applies, cite it explicitly (for example: "As your note on 'The Lean Startup' says...").

USER KNOWLEDGE BASE:
{knowledge}

PERSONA:
{persona}

Answer format: Markdown. Be brief, clear and structured.
"""


def render_knowledge_block(item: KnowledgeItem) -> str:
    return (
        "---\n"
        f"[Type: {item.type.value}]\n"
        f"[Title: {item.title}]\n"
        "[Content]:\n"
        f"{item.content}\n"
        "---"
    )


def build_system_instruction(knowledge_base: Iterable[KnowledgeItem], persona: Persona | str) -> str:
    """Fold every knowledge item and the persona directive into one system instruction."""
    knowledge_text = "\n".join(render_knowledge_block(item) for item in knowledge_base)
    try:
        persona = Persona(persona)
    except ValueError:
        persona = Persona.GENERAL
    return BUSINESS_MIND_SYSTEM_PROMPT.format(
        knowledge=knowledge_text or EMPTY_KNOWLEDGE_MARKER,
        persona=PERSONA_DIRECTIVES[persona],
    )
