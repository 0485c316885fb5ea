"""OpenAI Responses API client for report text and image edits."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from handy_report.services.assistant import ImageEditResult, ResponsesClient


@dataclass
class OpenAIResponsesClient(ResponsesClient):
    """Responses client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIResponsesClient":
        """Create an OpenAI responses client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        messages: list[dict[str, object]],
        instructions: str | None = None,
        schema: dict[str, object] | None = None,
        schema_name: str = "structured_output",
    ) -> str:
        """Call OpenAI Responses API, optionally with structured outputs."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": messages,
            "store": store,
        }
        if instructions:
            request_payload["instructions"] = instructions
        if schema is not None:
            request_payload["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                }
            }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text

    async def edit_image(
        self,
        *,
        model: str,
        store: bool,
        image_data_url: str,
        prompt: str,
    ) -> ImageEditResult:
        """Ask the model to redraw an image through the image generation tool."""
        response = await self.client.responses.create(
            model=model,
            input=[
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_data_url},
                    ],
                }
            ],
            tools=[{"type": "image_generation"}],
            store=store,
        )
        images = [
            item.result
            for item in response.output
            if getattr(item, "type", None) == "image_generation_call"
            and getattr(item, "result", None)
        ]
        return ImageEditResult(
            image_base64=images[-1] if images else None,
            text=response.output_text or "",
        )

    async def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self.client.close()
