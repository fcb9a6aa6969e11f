from __future__ import annotations

PROJECT_SUMMARY_SYSTEM = """You are a bio research analysis assistant."""

PROJECT_SUMMARY_USER = """Summarize this bio research project in 3 concise sentences.
Focus on goal, constraints, and feasibility.
Do not suggest solutions yet.

Project Description: {description}
Capabilities: {capabilities}
Constraints: {constraints}"""

PAPER_GENERATION_SYSTEM = """You are a research database. Return valid JSON only."""

PAPER_GENERATION_USER = """Generate {count} bio research papers for: "{description}"
Project summary: {summary}

Return JSON with a "papers" array. Each paper needs:
- title (concise)
- abstract (100 words max)
- year (2018-2024)
- authors (array of 2-3 names)
- citationCount (number)
- venue (journal name)
- approach (research method used)

Cover different approaches. Format:
{{"papers": [{{"paperId":"id","title":"...","abstract":"...","year":2023,"authors":["Name"],"citationCount":100,"venue":"Journal","approach":"method"}}]}}"""

CLUSTER_LABEL_SYSTEM = """You are a research categorization assistant."""

CLUSTER_LABEL_USER = """Given these paper abstracts, give a short label (3-5 words) describing their common approach.

Abstracts:
{abstracts}

Return only the label, nothing else."""

ABSTRACT_WRITING_SYSTEM = """You are a scientific writing assistant."""

ABSTRACT_WRITING_USER = """Based on this research paper title and metadata, write a concise 2-3 sentence abstract that describes what the paper likely covers:

Title: {title}
Year: {year}
Authors: {authors}
Venue: {venue}

Write ONLY the abstract, nothing else."""

EVIDENCE_EXTRACTION_SYSTEM = """You are a research evidence extraction assistant. Always respond with valid JSON."""

EVIDENCE_EXTRACTION_USER = """From this research abstract, extract:
- What worked
- What failed or was limited
- Key lessons
- Practical constraints

Return JSON only in this exact format:
{{
  "what_worked": ["point 1", "point 2"],
  "limitations": ["point 1", "point 2"],
  "key_lessons": ["point 1", "point 2"],
  "practical_constraints": ["point 1", "point 2"]
}}

Do not invent information. Only extract what's explicitly stated.
Use an empty list when the abstract says nothing for a field.

Title: {title}
Abstract: {abstract}"""

SIMILAR_PAPERS_SYSTEM = """You are a research database. Generate realistic similar papers. Return valid JSON only."""

SIMILAR_PAPERS_USER = """Based on this research paper, suggest {count} similar research papers in the same field:

Title: {title}
Abstract: {abstract}

Generate {count} papers with:
- Different but related titles
- Similar methodology or research area
- Author names
- Years between 2018-2024
- Brief abstracts (100 words)

Return ONLY valid JSON:
{{"papers": [{{"title":"...","abstract":"...","year":2023,"authors":["Name1","Name2"],"approach":"method"}}]}}"""

NOTE_REFINE_SYSTEM = """You are a research note assistant."""

NOTE_REFINE_ACTIONS = {
    "clarify": "Refine the following research note. Preserve scientific meaning. Base reasoning only on linked sources.",
    "summarize": "Summarize the following research note concisely while preserving key scientific points.",
    "next_steps": "Based on this research note and linked sources, suggest concrete next steps for the researcher.",
}

NOTE_REFINE_USER = """{instruction}

Note:
{content}

Linked Sources:
{sources}"""

GROUNDED_CHAT_SYSTEM = """You are an AI assistant inside a bio research workspace.

Rules:
- Only use the provided context.
- Cite which paper or note supports each claim.
- If evidence is missing, say so.
- Be realistic for small labs.
- Do not invent protocols or results."""

GROUNDED_CHAT_USER = """Context:
Project Summary: {summary}

Constraints: {constraints}

Selected Papers:
{papers}

Evidence Cards:
{evidence}

Linked Notes:
{notes}

User question: {message}"""
