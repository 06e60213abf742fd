"""Query formulation: expansion with related phrases and hypothetical documents (HyDE)."""
import logging
import re
from typing import List, Optional

from services.llm_client import LLMClient, GenerationOptions

logger = logging.getLogger(__name__)

EXPANSION_PROMPTS = {
    "en": """Expand this DataTalks 2025 event question with related terms and synonyms. Return a list of 3-5 related phrases separated by commas:

Original question: {query}

Related phrases:""",
    "pl": """Rozszerz to pytanie o wydarzenie DataTalks 2025 o powiązane terminy i synonimy. Zwróć listę 3-5 powiązanych fraz oddzielonych przecinkami:

Oryginalne pytanie: {query}

Powiązane frazy:""",
}

HYDE_PROMPTS = {
    "en": """Generate a detailed, factual answer to this question about DataTalks 2025 event at Browary Warszawskie: {query}

Answer in the style of an informational document, including specific details about:
- Location (Browary Warszawskie, ul. Grzybowska 58/60, Warsaw)
- Time (October 21-22, 2025)
- Speakers and topics
- Agenda and schedule
- Registration and badges

Answer:""",
    "pl": """Wygeneruj szczegółową, faktyczną odpowiedź na to pytanie o wydarzenie DataTalks 2025 w Browary Warszawskie: {query}

Odpowiedz w stylu dokumentu informacyjnego, zawierając konkretne szczegóły o:
- Lokalizacji (Browary Warszawskie, ul. Grzybowska 58/60, Warszawa)
- Czasie (21-22 października 2025)
- Prelegentach i tematach
- Agendzie i harmonogramie
- Rejestracji i identyfikatorach

Odpowiedź:""",
}

EXPANSION_OPTIONS = GenerationOptions(temperature=0.5, top_p=0.9, max_tokens=80)
HYDE_OPTIONS = GenerationOptions(temperature=0.3, top_p=0.8, max_tokens=200)

PHRASE_SEPARATORS = re.compile(r"[,;\n]")
MAX_EXPANSIONS = 4


def _template(templates: dict, language: str) -> str:
    return templates.get(language, templates["en"])


class QueryFormulator:
    """Produce alternative phrasings of a question to widen retrieval recall."""

    def __init__(
        self,
        llm_client: LLMClient,
        use_query_expansion: bool = False,
        use_hyde: bool = False,
        model: Optional[str] = None
    ):
        """
        Args:
            llm_client: Client used for expansion and HyDE generation
            use_query_expansion: Ask the model for related phrases
            use_hyde: Ask the model for a hypothetical answer document
            model: Chat model tag (defaults to the client's default)
        """
        self.llm_client = llm_client
        self.use_query_expansion = use_query_expansion
        self.use_hyde = use_hyde
        self.model = model

    async def formulate(self, query: str, language: str = "en") -> List[str]:
        """
        Build the query variants to search with, original query first.

        Args:
            query: User question
            language: "en" or "pl"

        Returns:
            Query strings; never empty
        """
        variants = [query]

        if self.use_query_expansion:
            variants = await self.expand_query(query, language)

        if self.use_hyde:
            hypothetical = await self.generate_hypothetical_document(query, language)
            if hypothetical:
                variants.append(hypothetical)

        logger.info(f"Searching with {len(variants)} query variations")
        return variants

    async def expand_query(self, query: str, language: str = "en") -> List[str]:
        """
        Ask the model for related phrases; the original query always leads.

        Any failure yields just [query].
        """
        try:
            logger.info("Expanding query with related terms...")
            prompt = _template(EXPANSION_PROMPTS, language).format(query=query)
            response = await self.llm_client.generate(prompt, EXPANSION_OPTIONS, model=self.model)

            phrases = self.parse_expansions(response.text)
            logger.info(f"Query expanded to {len(phrases) + 1} variations")
            return [query] + phrases

        except Exception as e:
            logger.error(f"Query expansion failed: {str(e)}")
            return [query]

    async def generate_hypothetical_document(self, query: str, language: str = "en") -> Optional[str]:
        """
        Ask the model to write a plausible answer document for the query.

        Returns:
            The synthetic document, or None when generation fails or is blank
        """
        try:
            logger.info("Generating HyDE hypothetical document...")
            prompt = _template(HYDE_PROMPTS, language).format(query=query)
            response = await self.llm_client.generate(prompt, HYDE_OPTIONS, model=self.model)

            document = response.text.strip()
            if not document:
                logger.warning("HyDE generation returned no text, skipping")
                return None

            logger.info(f"HyDE generated: {len(document)} chars")
            return document

        except Exception as e:
            logger.error(f"HyDE generation failed: {str(e)}")
            return None

    @staticmethod
    def parse_expansions(text: str) -> List[str]:
        """Split model output into phrases, keeping 6-99 character ones, at most four."""
        phrases = [part.strip() for part in PHRASE_SEPARATORS.split(text or "")]
        return [p for p in phrases if 5 < len(p) < 100][:MAX_EXPANSIONS]
