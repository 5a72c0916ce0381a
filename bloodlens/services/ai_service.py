"""AI Service for BloodLens - report interpretation and follow-up chat via OpenAI"""

import logging
from typing import Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from bloodlens.core.errors import UpstreamFailure
from bloodlens.utils.metrics import track_execution

logger = logging.getLogger(__name__)

CHAT_FALLBACK_REPLY = "I'm not sure how to answer that. Could you rephrase?"


class AIService:
    ANALYSIS_PROMPT = """You are an experienced preventive-health physician and clinical nutritionist.
You read blood test reports and explain them to patients in plain, warm language.

{patient_context}

Read the attached report image and return ONLY one valid JSON object, no markdown, no code fences:

{{
  "summary": "4-6 sentences. Name the 2-3 most significant findings with their values, note what is going well, end with encouragement.",
  "recommendation": "The single most impactful next step, specific to the values found.",
  "overallScore": 7.2,
  "riskLevel": "low|moderate|high|critical",
  "tests": [
    {{
      "test": "Full test name",
      "value": 5.4,
      "unit": "mmol/L",
      "range": "3.9-5.6",
      "flag": "normal|high|low",
      "explanation": "What the test measures and what this value means.",
      "rootCauses": "Likely causes for an abnormal value, empty string when normal.",
      "advice": "A 30-90 day plan referencing the value, empty string when normal."
    }}
  ],
  "futurePredictions": [
    {{"condition": "", "risk": "low|moderate|elevated|high", "timeframe": "", "reason": "", "prevention": ""}}
  ],
  "medicationAlerts": [
    {{"medication": "", "marker": "", "interaction": "", "suggestion": ""}}
  ],
  "healthGoals": ["Measurable goal tied to a marker"],
  "nutrition": {{
    "focus": "",
    "breakfast": ["Meal + why"],
    "lunch": ["Meal + why"],
    "dinner": ["Meal + why"],
    "snacks": ["Snack + why"],
    "avoid": ["Food + which marker it worsens"]
  }},
  "lifestyle": {{"exercise": "", "sleep": "", "stress": ""}},
  "supplements": [
    {{"name": "", "dose": "", "reason": "Reference the marker value", "duration": ""}}
  ]
}}

Rules:
- Include EVERY test shown in the report, normal or abnormal. Do not skip rows.
- "value" must be a number.
- "overallScore" is a number from 1 to 10.
- "medicationAlerts" is [] when no medications are given.
- Recommend supplements only for a clear deficiency.
- Be specific to the markers, never generic. Do not diagnose."""

    def __init__(
        self,
        api_key: str,
        analysis_model: str = "gpt-4o",
        chat_model: str = "gpt-4o-mini",
        analysis_timeout: float = 180.0,
        analysis_max_tokens: int = 8000,
        chat_max_tokens: int = 500,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key
        self.analysis_timeout = analysis_timeout
        self._client = client
        self.analysis_model = analysis_model
        self.chat_model = chat_model
        self.analysis_max_tokens = analysis_max_tokens
        self.chat_max_tokens = chat_max_tokens

    @property
    def client(self) -> AsyncOpenAI:
        """Built on first use so the app starts without OPENAI_API_KEY"""
        if self._client is None:
            if not self.api_key:
                raise UpstreamFailure("OPENAI_API_KEY is not set")
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.analysis_timeout, max_retries=0)
        return self._client

    @staticmethod
    def format_patient_context(
        age: Optional[str] = None,
        gender: Optional[str] = None,
        medications: Optional[str] = None,
        conditions: Optional[str] = None,
    ) -> str:
        lines = [
            f"Patient Age: {age}" if age else "",
            f"Patient Gender: {gender}" if gender else "",
            f"Current Medications: {medications}" if medications else "",
            f"Known Chronic Conditions: {conditions}" if conditions else "",
        ]
        lines = [line for line in lines if line]
        if not lines:
            return ""
        return "PATIENT CONTEXT:\n" + "\n".join(lines)

    @track_execution
    async def analyze_report(
        self,
        image_data_url: str,
        extracted_text: Optional[str] = None,
        patient_context: str = "",
    ) -> str:
        """
        Send the normalized report image to the analysis model.

        Returns the raw reply text; parsing is report_parser's job.
        Raises UpstreamFailure if the call fails. Not retried.
        """
        user_content = [
            {"type": "text", "text": "Please analyze this blood report comprehensively."},
            {"type": "image_url", "image_url": {"url": image_data_url}},
        ]
        if extracted_text:
            user_content.append({"type": "text", "text": f"Extracted report text:\n\n{extracted_text}"})

        logger.info(f"[AIService] Calling {self.analysis_model} for report analysis")

        try:
            response = await self.client.chat.completions.create(
                model=self.analysis_model,
                messages=[
                    {"role": "system", "content": self.ANALYSIS_PROMPT.format(patient_context=patient_context)},
                    {"role": "user", "content": user_content},
                ],
                response_format={"type": "json_object"},
                max_tokens=self.analysis_max_tokens,
                temperature=0.1,  # low for stable structure
            )
        except OpenAIError as e:
            logger.error(f"[AIService] Analysis call failed: {e}")
            raise UpstreamFailure(f"Language model request failed: {e}")

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    @track_execution
    async def chat(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.chat_model,
                messages=[{"role": "system", "content": system_prompt}, *messages],
                max_tokens=self.chat_max_tokens,
                temperature=0.5,
            )
        except OpenAIError as e:
            logger.error(f"[AIService] Chat call failed: {e}")
            raise UpstreamFailure(f"Language model request failed: {e}")

        if not response.choices:
            return CHAT_FALLBACK_REPLY
        return response.choices[0].message.content or CHAT_FALLBACK_REPLY
