from unittest.mock import MagicMock

import openai
import pytest

from mojing_ai.utils.errors import AdapterCallFailed
from mojing_ai.utils.openai_client import FEATURE_TASK_GENERATE, OpenAIClient
from tests.conftest import failing_client, provider_error


@pytest.mark.parametrize("status", [500, 400])
def test_sdk_errors_become_adapter_call_failed(status):
    client = failing_client(provider_error(status))

    with pytest.raises(AdapterCallFailed) as exc_info:
        client.generate(FEATURE_TASK_GENERATE, [{"role": "user", "content": "hi"}])
    assert isinstance(exc_info.value.__cause__, openai.APIError)


def test_generate_passes_json_format_and_feature_budget():
    client = OpenAIClient(api_key="test-key")
    client.client = MagicMock()
    completion = client.client.chat.completions.create.return_value
    completion.choices[0].message.content = ' {"tasks": []} '
    completion.usage.total_tokens = 42

    result = client.generate(FEATURE_TASK_GENERATE, [{"role": "user", "content": "hi"}], temperature=0.8)

    assert result.content == '{"tasks": []}'
    assert result.feature_tag == FEATURE_TASK_GENERATE
    kwargs = client.client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["max_tokens"] == 2000
