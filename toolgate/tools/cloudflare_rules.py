"""Cloudflare custom rule tool."""

import json
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field

from toolgate.tools.base import ToolContext, ToolDescriptor
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


class CustomRule(BaseModel):
    """A custom rule as accepted by the rulesets API."""

    action: str = Field(..., description="Rule action, e.g. block, managed_challenge, log")
    description: str = Field(..., description="Human-readable rule description")
    expression: str = Field(..., min_length=1, description="Rule expression in the Cloudflare rules language")


class WrappedCustomRule(BaseModel):
    """Rule wrapped in an object envelope, as some models emit it."""

    type: Literal["object"]
    value: CustomRule


class AddCustomRuleInput(BaseModel):
    """Input schema for adding a custom rule.

    Only structured input is accepted; a rule sent as a JSON string is a
    schema error.
    """

    rule: CustomRule | WrappedCustomRule

    def normalized_rule(self) -> CustomRule:
        """The rule with its envelope removed and the expression parenthesized."""
        rule = self.rule.value if isinstance(self.rule, WrappedCustomRule) else self.rule
        return rule.model_copy(update={"expression": wrap_expression(rule.expression)})


def wrap_expression(expression: str) -> str:
    """Wrap a rule expression in parentheses, as the dashboard expression builder expects."""
    expression = expression.strip()
    if expression.startswith("(") and expression.endswith(")"):
        return expression
    return f"({expression})"


RULE_TOOL_DESCRIPTION = """Create a Cloudflare custom rule in the pre-configured zone ruleset.

Cloudflare rules evaluate conditions against HTTP requests using fields, values and operators,
structured with parentheses.

Operators:
- Comparison: eq, ne, lt, gt, contains, wildcard, strict wildcard, matches, in.
- Logical: not (!), and (&&), xor (^^), or (||). Precedence: not > and > xor > or.
- Always wrap the entire rule expression in parentheses, e.g. (cf.waf.score < 20 and ip.src.country ne "JP").

Key fields: cf.bot_management.score, cf.bot_management.verified_bot, cf.client.bot, cf.waf.score,
http.host, http.request.method, http.request.uri.path, http.user_agent, http.referer, ip.src,
ip.src.country, ip.src.asnum.

Example: to block the user agent 'BadBot/1.0' send
{"action": "block", "description": "Block BadBot", "expression": "http.user_agent eq \\"BadBot/1.0\\""}.
"""


async def add_custom_rule(args: AddCustomRuleInput, context: ToolContext) -> Any:
    settings = context.services.settings
    rule = args.normalized_rule()

    if not settings.cloudflare_api_token:
        return "CLOUDFLARE_API_TOKEN is not set in environment variables."

    url = (
        f"{settings.cloudflare_api_url}/zones/{settings.cloudflare_zone_id}"
        f"/rulesets/{settings.cloudflare_ruleset_id}/rules"
    )
    logger.info(f"Adding custom rule: action={rule.action} expression={rule.expression}")

    try:
        response = await context.services.http.post(
            url,
            json=rule.model_dump(),
            headers={"Authorization": f"Bearer {settings.cloudflare_api_token}"},
        )
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Error adding Cloudflare custom rule: {e}")
        return f"Error adding Cloudflare custom rule: {e}"

    if response.is_error:
        errors = data.get("errors") if isinstance(data, dict) else None
        return f"Error from Cloudflare API: {json.dumps(errors) if errors else response.reason_phrase}"

    return data


def create_custom_rule_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="addCloudflareCustomRule",
        description=RULE_TOOL_DESCRIPTION,
        input_schema=AddCustomRuleInput,
        execute=add_custom_rule,
    )
