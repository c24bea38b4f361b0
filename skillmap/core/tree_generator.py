import logging
from typing import Any, Dict, Mapping, Optional

from openai import OpenAI

from skillmap.core.config import settings
from skillmap.core.exceptions import TreeGenerationError
from skillmap.utils.json_utils import safe_json_loads
from skillmap.utils.name_utils import normalize_name

logger = logging.getLogger(__name__)

HIERARCHY_SYSTEM_PROMPT = (
    "You design competency taxonomies for professional career paths. "
    "Answer with a single JSON object and nothing else."
)

HIERARCHY_USER_PROMPT = """Build the competency hierarchy for the career path or topic "{topic}".

Return JSON shaped exactly like:
{{
  "competency": "<topic>",
  "core-competency": false,
  "subcompetencies": [
    {{"competency": "<name>", "core-competency": false, "subcompetencies": [
      {{"competency": "<name>", "core-competency": true}}
    ]}}
  ]
}}

Rules:
- "core-competency": true marks a leaf; a core competency never has subcompetencies.
- Use short, canonical names (e.g. "React", not "React.js framework").
- Do not repeat a competency anywhere in the tree."""

SKILL_TREE_SYSTEM_PROMPT = (
    "You decompose competencies into testable skills. "
    "Answer with a single JSON object and nothing else."
)

SKILL_TREE_USER_PROMPT = """Decompose the competency "{competency}" into skills.

Return JSON shaped exactly like:
{{
  "competency": "{competency}",
  "skills": [
    {{"skill": "<name>", "subskills": [
      {{"skill": "<name>", "subskills": []}}
    ]}}
  ]
}}

Rules:
- Leaves must be small, directly assessable abilities.
- Two to four levels deep at most.
- Do not repeat a skill anywhere in the tree."""

JSON_REPAIR_SUFFIX = (
    "\n\n[OUTPUT CONSTRAINT]\n"
    "- Your previous answer was not valid JSON.\n"
    "- Reply STRICTLY with one valid JSON object.\n"
    "- No backticks, no comments, no text outside the JSON."
)


class TreeGenerator:
    """Port for whatever invents competency and skill trees."""

    def generate_hierarchy(self, topic: str) -> Dict[str, Any]:
        raise NotImplementedError

    def generate_skill_tree(self, competency_name: str) -> Dict[str, Any]:
        raise NotImplementedError


class OpenAITreeGenerator(TreeGenerator):
    def __init__(
        self,
        client: Optional[OpenAI] = None,
        *,
        model: Optional[str] = None,
        max_retries: Optional[int] = None,
    ):
        self.client = client
        self.model = model or settings.OPENAI_MODEL
        self.max_retries = settings.TREE_GENERATOR_MAX_RETRIES if max_retries is None else max_retries

    def generate_hierarchy(self, topic: str) -> Dict[str, Any]:
        return self._call_json(
            HIERARCHY_SYSTEM_PROMPT,
            HIERARCHY_USER_PROMPT.format(topic=topic),
            label=f"hierarchy:{topic}",
        )

    def generate_skill_tree(self, competency_name: str) -> Dict[str, Any]:
        return self._call_json(
            SKILL_TREE_SYSTEM_PROMPT,
            SKILL_TREE_USER_PROMPT.format(competency=competency_name),
            label=f"skills:{competency_name}",
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _get_client(self) -> OpenAI:
        if self.client is None:
            if not settings.OPENAI_API_KEY:
                raise TreeGenerationError(message="OPENAI_API_KEY is not configured")
            self.client = OpenAI(api_key=settings.OPENAI_API_KEY)
        return self.client

    def _call_json(self, system_prompt: str, user_prompt: str, *, label: str) -> Dict[str, Any]:
        client = self._get_client()
        last_exc: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            system_used = system_prompt if attempt == 0 else system_prompt + JSON_REPAIR_SUFFIX
            try:
                logger.info("Tree generation %s with model %s (attempt %s)", label, self.model, attempt + 1)
                response = client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_used},
                        {"role": "user", "content": user_prompt},
                    ],
                    response_format={"type": "json_object"},
                )
                data = safe_json_loads(response.choices[0].message.content)
                if not isinstance(data, (dict, list)) or not data:
                    raise ValueError("empty or non-structured JSON payload")
                if isinstance(data, list):
                    data = {"subcompetencies": data}
                return data
            except Exception as exc:
                last_exc = exc
                logger.warning(
                    "Tree generation %s failed (attempt %s/%s): %s",
                    label,
                    attempt + 1,
                    self.max_retries + 1,
                    exc,
                )

        raise TreeGenerationError(message=f"tree generation failed for {label}: {last_exc}")


class StaticTreeGenerator(TreeGenerator):
    """Serves pre-built trees, keyed by normalized topic / competency name."""

    def __init__(
        self,
        hierarchies: Optional[Mapping[str, Dict[str, Any]]] = None,
        skill_trees: Optional[Mapping[str, Dict[str, Any]]] = None,
    ):
        self.hierarchies = {normalize_name(k): v for k, v in (hierarchies or {}).items()}
        self.skill_trees = {normalize_name(k): v for k, v in (skill_trees or {}).items()}
        self.calls: list[tuple[str, str]] = []

    def generate_hierarchy(self, topic: str) -> Dict[str, Any]:
        self.calls.append(("hierarchy", topic))
        tree = self.hierarchies.get(normalize_name(topic))
        if tree is None:
            raise TreeGenerationError(message=f"no hierarchy registered for '{topic}'")
        return tree

    def generate_skill_tree(self, competency_name: str) -> Dict[str, Any]:
        self.calls.append(("skills", competency_name))
        tree = self.skill_trees.get(normalize_name(competency_name))
        if tree is None:
            raise TreeGenerationError(message=f"no skill tree registered for '{competency_name}'")
        return tree


def get_tree_generator() -> TreeGenerator:
    if settings.TREE_GENERATOR == "static":
        return StaticTreeGenerator()
    return OpenAITreeGenerator()
