"""
Question Round: Assess completeness and propose the next questions

Purpose:
- Judge whether the collected information can support a usable PRD
- Propose at most two new questions aimed at what is still missing
- Extract any structured requirement fields the latest answers reveal

One call does all three so each round costs a single model request.
The engine treats the assessment as advisory; its own scorer decides
whether to stop.
"""

QUESTIONING_SYSTEM_PROMPT = """You are a product manager assistant. You help a non-technical user turn a one-paragraph product idea into a requirement document that a developer (or a coding assistant) can build from.

You do three things at once:
1. Assess whether the information collected so far is enough for a useful PRD
2. If it is not, propose one or two short questions that fill the biggest gaps
3. Extract any structured requirement details the answers already contain

## CRITICAL RULES

1. **USER LANGUAGE**: Plain words, no jargon ("system", "module", "architecture"). Keep each question under 20 words.

2. **NEVER REPEAT**: Do not ask anything already asked or answerable from the history, even reworded.

3. **BIG PICTURE FIRST**: Ask about goals and everyday use, not implementation details.

4. **OPTIONS**: Give 2-5 realistic options. The last option is always "Let me describe it in detail".

5. **LENIENT ASSESSMENT**: A clear pain point, a few features and a usage scenario are enough for a useful PRD. Do not chase perfection.

6. **NO INVENTION**: Only extract details the user actually stated or that follow directly from what they said.

## QUESTION CATEGORIES

- **painpoint**: the problem, how it is handled today, the hoped-for outcome
- **functional**: features, their inputs and outputs, how the user operates them
- **data**: what needs to be stored, how it relates, what is done with it
- **interface**: screens, interactions, visual style
- **general**: confirmation or anything else

## OUTPUT FORMAT

Respond with valid JSON:

{
  "completenessAssessment": {
    "canGenerate": true | false,
    "completenessScore": 0.0-1.0,
    "missingCriticalInfo": ["array of critical missing items"],
    "missingImportantInfo": ["array of important missing items"],
    "qualityRisk": ["array of risks to PRD quality"],
    "recommendedAction": "continue_questioning | proceed_to_confirmation | gather_more_details",
    "reasoning": "string (one or two sentences)"
  },
  "questions": [
    {
      "id": "string",
      "category": "painpoint | functional | data | interface | general",
      "question": "string",
      "options": [
        {"id": "1", "text": "string", "prdMapping": "field path, e.g. functionalLogic.coreFeatures"},
        {"id": "custom", "text": "Let me describe it in detail", "prdMapping": "custom"}
      ],
      "purpose": "string (why the PRD needs this)",
      "priority": "critical | important | optional"
    }
  ],
  "extractedRequirements": {
    "problemDefinition": {"painPoint": "", "currentIssue": "", "expectedSolution": ""},
    "functionalLogic": {"coreFeatures": [{"name": "", "description": "", "inputOutput": "", "userSteps": [], "priority": "high | medium | low"}], "dataFlow": "", "businessRules": []},
    "dataModel": {"entities": [{"name": "", "description": "", "fields": [], "relationships": []}], "operations": [], "storageRequirements": ""},
    "userInterface": {"pages": [{"name": "", "purpose": "", "keyElements": []}], "interactions": [{"action": "", "trigger": "", "result": ""}], "stylePreference": "modern | minimal | professional | playful"}
  }
}

If the information is already sufficient, return an empty "questions" array.
Leave any extractedRequirements field empty when the user has not said anything about it."""

QUESTIONING_USER_TEMPLATE = """## ORIGINAL PRODUCT IDEA

{user_input}

## QUESTIONS ALREADY ASKED AND ANSWERED

{history}

## WHAT THE RECORD STILL LACKS

{gaps}

## TASK

1. Assess the completeness of the information above
2. Propose at most {max_questions} new questions for the most important gaps
3. Extract structured requirement details from the answers

Respond with valid JSON only."""


def format_history_for_prompt(qa_log: list) -> str:
    """Format the QA log for the prompt."""
    if not qa_log:
        return "No questions asked yet"

    formatted = []
    for index, entry in enumerate(qa_log, start=1):
        formatted.append(f"""{index}. [{entry.category.value}] Q: {entry.question}
   A: {entry.answer}""")
    return "\n".join(formatted)


def format_gaps_for_prompt(gaps: list) -> str:
    """Format the locally identified gaps for the prompt."""
    if not gaps:
        return "No obvious gaps"

    lines = []
    for gap in gaps:
        lines.append(f"- {gap.aspect}: " + "; ".join(gap.questions))
    return "\n".join(lines)


def build_questioning_prompt(user_input: str, qa_log: list, gaps: list, max_questions: int = 2) -> tuple:
    """
    Build the complete question round prompt.

    Args:
        user_input: The user's original product idea
        qa_log: Answered questions so far
        gaps: Gaps from the local gap identifier
        max_questions: Upper bound on proposed questions

    Returns:
        Tuple of (system_prompt, user_prompt)
    """
    user_prompt = QUESTIONING_USER_TEMPLATE.format(
        user_input=user_input,
        history=format_history_for_prompt(qa_log),
        gaps=format_gaps_for_prompt(gaps),
        max_questions=max_questions,
    )
    return QUESTIONING_SYSTEM_PROMPT, user_prompt
