"""Controller / Orchestrator: answers one chat message for one business.

Each message runs through a fixed priority chain: arithmetic shortcut,
topical gate, retrieval confidence gate, then the generator with a local
fallback. Every path records exactly one user turn and one assistant turn.
"""
import random
from typing import Any, Dict, List, Optional, Tuple

from .business import BusinessContext, BusinessService
from .config import Config
from .errors import NotFoundError, UpstreamError, ValidationError
from .generate import GenerationClient
from .prompt_builder import ContextComposer, PromptBuilder
from .retrieval import RelevanceScorer
from .session import SessionManager
from ..nlu.arithmetic import handle_math_query, is_math_query
from ..nlu.rules import classify_topic, redirect_message
from ..schemas.io_models import ChatResponse, DebugInfo, RagDiagnostics, RetrievalResult
from ..utils.logger import get_logger

logger = get_logger()

NO_INFORMATION_TEMPLATE = ("I don't have specific information about that right now. "
                           "{contact} and our team will be happy to help.")

FALLBACK_WITH_CONTEXT_TEMPLATE = "Here's what I can tell you: {answer}"

KB_PREVIEW_CHARS = 200


class Controller:
    def __init__(self, business_service: BusinessService, session_manager: Optional[SessionManager] = None,
                 scorer: Optional[RelevanceScorer] = None, generator: Optional[GenerationClient] = None,
                 composer: Optional[ContextComposer] = None, builder: Optional[PromptBuilder] = None,
                 rng: Optional[random.Random] = None):
        self.business_service = business_service
        self.session_manager = session_manager or SessionManager()
        self.scorer = scorer or RelevanceScorer()
        self.generator = generator or GenerationClient()
        self.composer = composer or ContextComposer()
        self.builder = builder or PromptBuilder()
        self.rng = rng or random.Random()

    def validate_message(self, message: Any) -> str:
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message is required")
        if len(message) > Config.MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message too long (max {Config.MAX_MESSAGE_LENGTH} characters)")
        return message.strip()

    def get_context(self, business_id: str) -> BusinessContext:
        context = self.business_service.get_business_context(business_id)
        if context is None:
            raise NotFoundError(business_id)
        return context

    def answer(self, message: str, business_id: str, session_id: str) -> ChatResponse:
        """
        Answer one message and record the exchange.

        Args:
            message: User message
            business_id: Business whose knowledge grounds the answer
            session_id: Conversation thread id

        Returns:
            ChatResponse

        Raises:
            ValidationError: empty or oversized message
            NotFoundError: unknown business
        """
        message = self.validate_message(message)
        context = self.get_context(business_id)
        logger.info(f"[WORKFLOW] 1. Controller received message for {business_id}/{session_id}: '{message[:100]}'")

        with self.session_manager.session_lock(session_id):
            has_history = self.session_manager.has_history(session_id)
            reply, debug = self._respond(message, context, session_id, has_history)

            self.session_manager.append_turn(session_id, "user", message)
            self.session_manager.append_turn(session_id, "assistant", reply)

        logger.info(f"[WORKFLOW] 6. Replied via '{debug.path}': '{reply[:100]}'")
        return ChatResponse(
            response=reply,
            is_new_conversation=not has_history,
            initial_message=None if has_history else context.initial_greeting,
            debug=debug,
        )

    def _respond(self, message: str, context: BusinessContext, session_id: str,
                 has_history: bool) -> Tuple[str, DebugInfo]:
        if is_math_query(message):
            logger.info("[WORKFLOW] 2. Arithmetic shortcut")
            return handle_math_query(message), DebugInfo(path="arithmetic")

        decision = classify_topic(message, context, has_history=has_history)
        logger.info(f"[WORKFLOW] 3. Topic gate: allowed={decision.allowed} ({decision.reason})")
        if not decision.allowed:
            return redirect_message(context.business_name, self.rng), DebugInfo(path="redirect")

        retrieval = self.scorer.retrieve(message, context, top_k=Config.CHAT_TOP_K,
                                         threshold=Config.CHAT_THRESHOLD)
        translation = retrieval.translation
        debug = DebugInfo(
            context_found=len(retrieval.contexts),
            max_score=retrieval.max_score,
            was_translated=translation.was_translated,
            original_language=translation.original_language,
        )

        # Greetings carry no facts to hallucinate, so they skip the confidence gate
        grounded_only = decision.reason != "conversation_starter"
        if grounded_only and retrieval.max_score < Config.CONFIDENT_SCORE_THRESHOLD:
            logger.info(f"[WORKFLOW] 4. Max score {retrieval.max_score:.3f} below "
                        f"{Config.CONFIDENT_SCORE_THRESHOLD}, not calling generator")
            debug.path = "no_information"
            return self.no_information_message(context), debug

        history = self.session_manager.get_history(session_id) + [{"role": "user", "content": message}]
        try:
            reply = self._generate(context, retrieval, history)
        except UpstreamError as e:
            logger.warning(f"Generator unavailable, using local fallback: {e}")
            debug.path = "fallback"
            return self.fallback_response(context, retrieval), debug
        except Exception:
            logger.exception("Unexpected error while generating, using local fallback")
            debug.path = "fallback"
            return self.fallback_response(context, retrieval), debug

        return reply, debug

    def _generate(self, context: BusinessContext, retrieval: RetrievalResult,
                  history: List[Dict[str, str]]) -> str:
        note = self.composer.translation_note(retrieval.translation)
        context_message = self.composer.compose(retrieval.contexts, note)
        messages = self.builder.build_messages(context.system_instructions, context_message, history)
        logger.info(f"[WORKFLOW] 5. Calling generator with {len(retrieval.contexts)} contexts")
        return self.generator.complete(
            messages,
            max_tokens=Config.MAX_TOKENS,
            temperature=Config.TEMPERATURE,
            top_p=Config.TOP_P,
        )

    def no_information_message(self, context: BusinessContext) -> str:
        if context.phone:
            contact = f"Please contact us at {context.phone}"
        elif context.email:
            contact = f"Please email us at {context.email}"
        else:
            contact = "Please contact us directly"
        return NO_INFORMATION_TEMPLATE.format(contact=contact)

    def fallback_response(self, context: BusinessContext, retrieval: RetrievalResult) -> str:
        """Templated reply built from the best match when the generator fails."""
        if retrieval.contexts:
            return FALLBACK_WITH_CONTEXT_TEMPLATE.format(answer=retrieval.contexts[0].entry.answer)
        return self.no_information_message(context)

    def initial_message(self, business_id: str) -> Dict[str, Any]:
        context = self.get_context(business_id)
        return {"message": context.initial_greeting, "business_name": context.business_name}

    def business_details(self, business_id: str) -> Dict[str, Any]:
        """Public profile of a business; the system prompt is left out."""
        context = self.get_context(business_id)
        return {
            "business_id": context.business_id,
            "name": context.business_name,
            "type": context.business_type,
            "phone": context.phone,
            "email": context.email,
            "address": context.address,
            "website": context.website,
            "initial_message": context.initial_greeting,
            "knowledge_base_count": len(context.knowledge_entries),
            "categories": context.categories(),
        }

    def knowledge_base(self, business_id: str, preview_chars: int = KB_PREVIEW_CHARS) -> Dict[str, Any]:
        """The loaded knowledge entries of a business, answers cut to a preview."""
        context = self.get_context(business_id)
        entries = []
        for entry in context.knowledge_entries:
            answer = entry.answer
            if len(answer) > preview_chars:
                answer = answer[:preview_chars] + "..."
            entries.append({"question": entry.question, "answer": answer,
                            "category": entry.category, "priority": entry.priority})
        return {
            "business_id": context.business_id,
            "business_name": context.business_name,
            "total_entries": len(entries),
            "entries": entries,
            "categories": context.categories(),
        }

    def explain_retrieval(self, query: str, business_id: str) -> RagDiagnostics:
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Query is required")
        return self.scorer.explain(query, self.get_context(business_id))

    def get_history(self, session_id: str) -> List[Dict[str, str]]:
        return self.session_manager.get_history(session_id)

    def clear_history(self, session_id: Optional[str] = None) -> bool:
        return self.session_manager.clear(session_id)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_sessions": self.session_manager.active_sessions(),
            "groq_api_available": self.generator.available,
            "model": self.generator.llm_model,
            "max_tokens": Config.MAX_TOKENS,
            "business_cache": self.business_service.get_stats(),
        }
