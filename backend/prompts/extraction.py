"""
Requirement Extraction: Turn the finished Q&A into a RequirementRecord

Purpose:
- Consolidate the original idea and every answer into the structured record
- Fill all four dimensions (problem, features, data, interface)
- Record metadata: product type, complexity, target users, confidence

Output:
- A single RequirementRecord JSON object
"""

EXTRACTION_SYSTEM_PROMPT = """You are a requirements analyst. Extract a structured RequirementRecord from a product idea and the user's answers to follow-up questions.

## CRITICAL RULES

1. **FAITHFUL**: Use only what the user said or what follows directly from it.

2. **CONCRETE**: Feature names are short verbs or nouns; user steps are short imperative phrases.

3. **EMPTY OVER INVENTED**: Leave a field empty rather than guessing.

## OUTPUT FORMAT

Respond with valid JSON:

{
  "problemDefinition": {
    "painPoint": "string",
    "currentIssue": "string (how the problem is handled today and why that falls short)",
    "expectedSolution": "string"
  },
  "functionalLogic": {
    "coreFeatures": [
      {
        "name": "string",
        "description": "string",
        "inputOutput": "string (what goes in, what comes out)",
        "userSteps": ["string"],
        "priority": "high | medium | low"
      }
    ],
    "dataFlow": "string",
    "businessRules": ["string"]
  },
  "dataModel": {
    "entities": [
      {"name": "string", "description": "string", "fields": ["string"], "relationships": ["string"]}
    ],
    "operations": ["string"],
    "storageRequirements": "string"
  },
  "userInterface": {
    "pages": [{"name": "string", "purpose": "string", "keyElements": ["string"]}],
    "interactions": [{"action": "string", "trigger": "string", "result": "string"}],
    "stylePreference": "modern | minimal | professional | playful"
  },
  "metadata": {
    "productType": "string",
    "complexity": "simple | medium | complex",
    "targetUsers": "string",
    "confidence": 0.0-1.0
  }
}"""

EXTRACTION_USER_TEMPLATE = """## ORIGINAL PRODUCT IDEA

{user_input}

## QUESTIONS AND ANSWERS

{history}

## TASK

Extract the RequirementRecord described in your instructions.

Respond with valid JSON only."""


def build_extraction_prompt(user_input: str, qa_log: list) -> tuple:
    """
    Build the extraction prompt.

    Returns:
        Tuple of (system_prompt, user_prompt)
    """
    from .questioning import format_history_for_prompt

    user_prompt = EXTRACTION_USER_TEMPLATE.format(
        user_input=user_input,
        history=format_history_for_prompt(qa_log),
    )
    return EXTRACTION_SYSTEM_PROMPT, user_prompt
