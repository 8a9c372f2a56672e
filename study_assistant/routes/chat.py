import json
from flask import Blueprint, request, jsonify, Response, stream_with_context, current_app
from flask_login import login_required, current_user
from study_assistant.errors import ValidationError
from study_assistant.services.context_service import assemble_context
from study_assistant.services.openrouter import OpenRouterService

chat_bp = Blueprint("chat", __name__, url_prefix="/api/chat")

VALID_ROLES = ("user", "assistant")


def _validate_messages(data):
    """The client resends the full transcript each turn; the last turn must be the user's."""
    messages = data.get("messages")
    if not isinstance(messages, list) or not messages:
        raise ValidationError("Messages are required")
    for m in messages:
        if not isinstance(m, dict) or m.get("role") not in VALID_ROLES or not isinstance(m.get("content"), str):
            raise ValidationError("Each message needs a role (user/assistant) and text content")
    last = messages[-1]
    if last["role"] != "user" or not last["content"].strip():
        raise ValidationError("Message content is required")
    return messages


def _sse(payload):
    return f"data: {json.dumps(payload)}\n\n"


@chat_bp.route("", methods=["POST"])
@login_required
def chat():
    data = request.get_json(silent=True) or {}
    messages = _validate_messages(data)
    stream = data.get("stream", True)

    service = OpenRouterService()
    model = service.resolve_model(data.get("model"))

    context = assemble_context(messages[-1]["content"], current_user.id)
    full_messages = service.build_messages(context.system_prompt(), messages)
    temperature = current_app.config["CHAT_TEMPERATURE"]
    max_tokens = current_app.config["CHAT_MAX_TOKENS"]

    if not stream:
        content = service.chat_completion(full_messages, model=model, temperature=temperature, max_tokens=max_tokens)
        return jsonify({"role": "assistant", "content": content, "grounding": context.mode})

    # Opens the upstream stream now so a failed request is a plain JSON error
    tokens = service.chat_completion_stream(full_messages, model=model, temperature=temperature, max_tokens=max_tokens)
    logger = current_app.logger

    def generate():
        yield _sse({"grounding": context.mode})
        try:
            for token in tokens:
                yield _sse({"content": token})
        except Exception as e:
            logger.error(f"Chat stream interrupted: {e}")
            yield _sse({"error": str(e)})
        finally:
            tokens.close()
        yield "data: [DONE]\n\n"

    response = Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
    # Releases the upstream connection even if the client leaves before the first token
    response.call_on_close(tokens.close)
    return response


@chat_bp.route("/models", methods=["GET"])
@login_required
def get_chat_models():
    return jsonify({"models": OpenRouterService().get_available_models()})
