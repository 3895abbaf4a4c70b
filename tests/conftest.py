import json

import pytest

from PromptBench.AiEnginePlacebo import clear_placebo_data_provider


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
  monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
  clear_placebo_data_provider()
  yield
  clear_placebo_data_provider()


SKATE_SUITE = {
  "id": "skate-tricks",
  "name": "Skate Tricks",
  "description": "Name the trick",
  "system_prompt": "Answer with the trick name.",
  "tests": [
    {
      "prompt": "Ollie with a 360 shuvit and a kickflip?",
      "answers": ["tre flip", "360 flip"],
      "negative_answers": ["backside 360 kickflip", "360 heelflip"],
    },
    {
      "prompt": "Heel flick spin along the length?",
      "answers": ["heelflip"],
    },
  ],
}


@pytest.fixture
def suite_dict():
  return json.loads(json.dumps(SKATE_SUITE))


@pytest.fixture
def suite_file(tmp_path, suite_dict):
  suites_dir = tmp_path / "suites"
  suites_dir.mkdir()
  path = suites_dir / "skate-tricks.json"
  path.write_text(json.dumps(suite_dict), encoding="utf-8")
  return path
