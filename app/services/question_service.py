"""Question-set generation and job-description analysis."""
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from app.exceptions import MalformedOutput
from app.models.interview import Question
from app.services.llm_service import TextGenerator
from app.utils.prompt_generator import generate_jd_analysis_prompt, generate_questions_prompt

logger = logging.getLogger(__name__)


class QuestionGenerator:
    def __init__(self, text_generator: TextGenerator):
        self.text_generator = text_generator

    async def analyze_job_description(self, job_description: str, job_role: Optional[str] = None) -> Dict[str, Any]:
        prompt = generate_jd_analysis_prompt(job_description, job_role)
        analysis = await self.text_generator.generate_json(prompt, temperature=0.3)
        if not isinstance(analysis, dict):
            raise MalformedOutput("JD analysis is not a JSON object")
        return analysis

    async def generate(
        self,
        mode: str,
        num_questions: int,
        job_role: str,
        job_description: str,
        tech_stack: Sequence[str],
        difficulty: str,
    ) -> List[Question]:
        """
        Generate exactly ``num_questions`` questions.

        Extra questions are dropped. Too few is treated as a bad reply, since
        every score denominator relies on the assigned count.
        """
        prompt = generate_questions_prompt(mode, num_questions, job_role, job_description, tech_stack, difficulty)
        generated = await self.text_generator.generate_json(prompt, temperature=0.6)
        if not isinstance(generated, list):
            raise MalformedOutput("Invalid questions format from AI")
        if len(generated) < num_questions:
            raise MalformedOutput(f"AI returned {len(generated)} questions, expected {num_questions}")
        try:
            questions = [Question.model_validate(q) for q in generated[:num_questions]]
        except ValidationError as e:
            raise MalformedOutput("AI returned malformed questions") from e
        if mode == "mcq" and any(q.correct_answer is None for q in questions):
            raise MalformedOutput("AI returned mcq questions without a correct answer")
        logger.info("Generated %d %s questions for %s", len(questions), mode, job_role)
        return questions
