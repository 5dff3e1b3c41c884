"""Tests for the tool catalog."""

import base64
import json

import httpx
import pytest
from conftest import PIKACHU_PAYLOAD, FakeImageGenerator, make_services

from toolgate.config import ToolSettings
from toolgate.services.storage import HttpImageGenerator, HttpObjectStorage
from toolgate.tools.base import ToolContext, create_tool_services
from toolgate.tools.cloudflare_rules import AddCustomRuleInput, add_custom_rule
from toolgate.tools.image import IMAGE_CACHE_CONTROL, GenerateImageInput, generate_image, image_key
from toolgate.tools.local_time import LocalTimeInput, get_local_time
from toolgate.tools.pokemon import SearchPokemonInput, search_pokemon
from toolgate.tools.webhook import SendWebhookInput, send_webhook
from toolgate.tools.workers import WorkerMessageInput, call_do_worker, call_graphql_worker


def context_for(services, tool_call_id: str = "call-1") -> ToolContext:
    return ToolContext(tool_call_id=tool_call_id, services=services)


class TestPokemonTool:
    """Tests for searchPokemon."""

    @pytest.mark.asyncio
    async def test_found(self):
        """Test the summary built from a PokeAPI payload."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=PIKACHU_PAYLOAD)

        services = make_services(handler)
        result = await search_pokemon(SearchPokemonInput(name_or_id="pikachu"), context_for(services))

        assert str(requests[0].url) == "https://pokeapi.co/api/v2/pokemon/pikachu"
        assert "Pokémon: pikachu (ID: 25)" in result
        assert "Types: electric" in result
        assert "Abilities: static, lightning-rod" in result
        assert "Sprite: https://img.example/25.png" in result

    @pytest.mark.asyncio
    async def test_not_found(self):
        services = make_services(lambda request: httpx.Response(404, text="Not Found"))

        result = await search_pokemon(SearchPokemonInput(name_or_id="missingno"), context_for(services))

        assert result == "No Pokémon found for 'missingno'. (Status: 404)"

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        services = make_services(handler)
        result = await search_pokemon(SearchPokemonInput(name_or_id="ditto"), context_for(services))

        assert result.startswith("Error fetching Pokémon details:")


class TestWebhookTool:
    """Tests for sendWebhook."""

    @pytest.mark.asyncio
    async def test_posts_message(self):
        """Test that the message is posted as chat text."""
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={})

        services = make_services(handler, webhook_url="https://chat.example/hook")
        result = await send_webhook(SendWebhookInput(message="Deploy done"), context_for(services))

        assert result == "Message successfully sent to the webhook."
        assert bodies == [{"text": "Deploy done"}]

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        services = make_services(lambda request: httpx.Response(500, text="oops"), webhook_url="https://chat.example/hook")

        result = await send_webhook(SendWebhookInput(message="hi"), context_for(services))

        assert result.startswith("Failed to send message to the webhook. Error: HTTP error! status: 500")

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        services = make_services(webhook_url="")

        result = await send_webhook(SendWebhookInput(message="hi"), context_for(services))

        assert "webhook URL is not configured" in result


class TestWorkerTools:
    """Tests for the companion worker tools."""

    @pytest.mark.asyncio
    async def test_do_worker_returns_body(self):
        services = make_services(
            lambda request: httpx.Response(200, text="Hello World from do-worker"),
            worker_url="https://worker.example/",
        )

        result = await call_do_worker(WorkerMessageInput(), context_for(services))

        assert result == "Hello World from do-worker"

    @pytest.mark.asyncio
    async def test_graphql_worker_uses_origin_url(self):
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(200, text='{"total": 3}')

        services = make_services(handler, worker_url="https://worker.example/", origin_worker_url="https://origin.example/")
        result = await call_graphql_worker(WorkerMessageInput(message="count"), context_for(services))

        assert urls == ["https://origin.example/"]
        assert result == '{"total": 3}'

    @pytest.mark.asyncio
    async def test_worker_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        services = make_services(handler, worker_url="https://worker.example/")
        result = await call_do_worker(WorkerMessageInput(), context_for(services))

        assert result.startswith("Failed to call do-worker via HTTP service binding:")


class TestImageTool:
    """Tests for generateImage."""

    @pytest.mark.asyncio
    async def test_generates_and_stores(self):
        """Test that the image is stored and its public URL returned."""
        services = make_services(public_bucket_url="https://bucket.example/")
        services.image_generator = FakeImageGenerator(b"\xff\xd8image")

        result = await generate_image(GenerateImageInput(prompt="a red fox", steps=6), context_for(services))

        [(key, stored)] = services.storage.objects.items()
        assert key.startswith("ai-generated/") and key.endswith(".jpg")
        assert stored.data == b"\xff\xd8image"
        assert stored.content_type == "image/jpeg"
        assert stored.cache_control == IMAGE_CACHE_CONTROL
        assert services.image_generator.calls == [("a red fox", 6)]
        assert f"https://bucket.example/{key}" in result

    @pytest.mark.asyncio
    async def test_generation_failure(self):
        services = make_services()
        services.image_generator = FakeImageGenerator(error=RuntimeError("model offline"))

        result = await generate_image(GenerateImageInput(prompt="a red fox"), context_for(services))

        assert result == "Failed to generate image. Error: model offline"
        assert services.storage.objects == {}

    def test_image_key(self):
        assert image_key(1700000000000).startswith("ai-generated/1700000000000-")

    @pytest.mark.asyncio
    async def test_http_image_generator(self):
        """Test the HTTP backend decodes the base64 image."""
        encoded = base64.b64encode(b"pixels").decode()
        payloads = []

        def handler(request):
            payloads.append(json.loads(request.content))
            return httpx.Response(200, json={"image": encoded})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            generator = HttpImageGenerator(http, "https://images.example/generate")
            image = await generator.generate("a boat", 4)

        assert image == b"pixels"
        assert payloads == [{"prompt": "a boat", "steps": 4}]

    @pytest.mark.asyncio
    async def test_http_image_generator_without_image(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={}))) as http:
            generator = HttpImageGenerator(http, "https://images.example/generate")
            with pytest.raises(RuntimeError, match="No image generated"):
                await generator.generate("a boat", 4)

    @pytest.mark.asyncio
    async def test_default_services_upload_to_bucket(self):
        """Test that the default storage PUTs the image to the bucket upload endpoint."""
        uploads = []

        def handler(request):
            uploads.append(request)
            return httpx.Response(200)

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        settings = ToolSettings(
            public_bucket_url="https://bucket.example/",
            bucket_upload_url="https://upload.example/bucket/",
            bucket_upload_token="secret",
        )
        services = create_tool_services(settings=settings, http=http)
        services.image_generator = FakeImageGenerator(b"\xff\xd8image")

        result = await generate_image(GenerateImageInput(prompt="a red fox"), context_for(services))

        assert isinstance(services.storage, HttpObjectStorage)
        [upload] = uploads
        key = upload.url.path.removeprefix("/bucket/")
        assert upload.method == "PUT"
        assert key.startswith("ai-generated/") and key.endswith(".jpg")
        assert upload.content == b"\xff\xd8image"
        assert upload.headers["content-type"] == "image/jpeg"
        assert upload.headers["cache-control"] == IMAGE_CACHE_CONTROL
        assert upload.headers["authorization"] == "Bearer secret"
        assert f"https://bucket.example/{key}" in result

    @pytest.mark.asyncio
    async def test_unconfigured_storage_reports_failure(self):
        """Test that no public link is returned when nothing can be stored."""
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        services = create_tool_services(settings=ToolSettings(bucket_upload_url=""), http=http)
        services.image_generator = FakeImageGenerator()

        result = await generate_image(GenerateImageInput(prompt="a red fox"), context_for(services))

        assert result == "Failed to generate image. Error: Object storage is not configured"

    @pytest.mark.asyncio
    async def test_http_storage_upload_rejected(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(403))) as http:
            storage = HttpObjectStorage(http, "https://upload.example")
            with pytest.raises(httpx.HTTPStatusError):
                await storage.put("ai-generated/x.jpg", b"data", "image/jpeg", IMAGE_CACHE_CONTROL)


class TestCloudflareRuleTool:
    """Tests for addCloudflareCustomRule."""

    RULE = {"rule": {"action": "block", "description": "Block BadBot", "expression": 'http.user_agent eq "BadBot/1.0"'}}

    @pytest.mark.asyncio
    async def test_posts_rule(self):
        """Test that the rule is posted to the ruleset with a wrapped expression."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True, "result": {"id": "rule-1"}})

        services = make_services(
            handler,
            cloudflare_api_token="token-123",
            cloudflare_zone_id="zone-1",
            cloudflare_ruleset_id="ruleset-1",
        )
        result = await add_custom_rule(AddCustomRuleInput.model_validate(self.RULE), context_for(services))

        request = seen[0]
        assert str(request.url) == "https://api.cloudflare.com/client/v4/zones/zone-1/rulesets/ruleset-1/rules"
        assert request.headers["Authorization"] == "Bearer token-123"
        assert json.loads(request.content)["expression"] == '(http.user_agent eq "BadBot/1.0")'
        assert result == {"success": True, "result": {"id": "rule-1"}}

    @pytest.mark.asyncio
    async def test_missing_token(self):
        services = make_services(cloudflare_api_token="")

        result = await add_custom_rule(AddCustomRuleInput.model_validate(self.RULE), context_for(services))

        assert result == "CLOUDFLARE_API_TOKEN is not set in environment variables."

    @pytest.mark.asyncio
    async def test_api_error(self):
        services = make_services(
            lambda request: httpx.Response(400, json={"errors": [{"message": "bad expression"}]}),
            cloudflare_api_token="token-123",
        )

        result = await add_custom_rule(AddCustomRuleInput.model_validate(self.RULE), context_for(services))

        assert result.startswith("Error from Cloudflare API:")
        assert "bad expression" in result


class TestLocalTimeTool:
    @pytest.mark.asyncio
    async def test_mentions_location(self, services):
        result = await get_local_time(LocalTimeInput(location="Tokyo"), context_for(services))
        assert result.startswith("The current local time in Tokyo is approximately")
