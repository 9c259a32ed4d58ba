import unittest
from unittest.mock import Mock

from carfind_api.providers.base import ResponseStream
from carfind_api.schemas import ChatApiRequest, ChatMessage, ChatResponse, Usage
from carfind_api.services.chat_service import ChatService


class ChatServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.payload = ChatApiRequest.model_validate(
            {
                "messages": [
                    {"role": "user", "content": "Cheap hybrid?"},
                    {"role": "assistant", "content": "What budget?"},
                    {"role": "user", "content": "Under $30k"},
                ],
                "sessionId": "s-1",
                "serviceType": "bedrock",
                "systemPrompt": "You help people find cars.",
                "maxTokens": 200,
                "temperature": 0.3,
            }
        )

    def test_build_chat_request_puts_system_prompt_first(self) -> None:
        request = ChatService.build_chat_request(self.payload)

        self.assertEqual(
            [(m.role, m.content) for m in request.messages],
            [
                ("system", "You help people find cars."),
                ("user", "Cheap hybrid?"),
                ("assistant", "What budget?"),
                ("user", "Under $30k"),
            ],
        )
        self.assertEqual(request.session_id, "s-1")
        self.assertEqual(request.max_tokens, 200)
        self.assertEqual(request.temperature, 0.3)

    def test_handle_chat_delegates_to_orchestrator_and_maps_response(self) -> None:
        orchestrator = Mock()
        reply = ChatMessage(role="assistant", content="Try a Prius.")
        orchestrator.run.return_value = ChatResponse(
            message=reply,
            session_id="s-1",
            usage=Usage(prompt_tokens=11, completion_tokens=22, total_tokens=33),
            metadata={"finish_reason": "completed"},
        )

        response = ChatService(orchestrator).handle_chat(self.payload)

        self.assertEqual(response.message, "Try a Prius.")
        self.assertEqual(response.message_id, reply.id)
        self.assertEqual(response.session_id, "s-1")
        self.assertEqual(response.input_tokens, 11)
        self.assertEqual(response.output_tokens, 22)
        self.assertEqual(response.total_tokens, 33)
        self.assertEqual(response.finish_reason, "completed")

        called_request, called_type = orchestrator.run.call_args.args
        self.assertEqual(len(called_request.messages), 4)
        self.assertEqual(called_type, "bedrock")

    def test_stream_chat_returns_orchestrator_stream(self) -> None:
        orchestrator = Mock()
        stream = Mock(spec=ResponseStream)
        orchestrator.stream.return_value = stream

        result = ChatService(orchestrator).stream_chat(self.payload)

        self.assertIs(result, stream)
        called_request, called_type = orchestrator.stream.call_args.args
        self.assertEqual(called_request.messages[0].role, "system")
        self.assertEqual(called_type, "bedrock")


if __name__ == "__main__":
    unittest.main()
