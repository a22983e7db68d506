from pathlib import Path

import pytest

from vaultlint.errors import PolicyError
from vaultlint.policy import DEFAULT_LANGUAGES, POLICY_FILENAME, Policy, load_policy, parse_policy


def test_defaults_when_file_is_absent(tmp_path: Path) -> None:
    policy = load_policy(tmp_path)
    assert policy == Policy()
    assert policy.maturity.growing_words == 1000
    assert policy.maturity.evergreen_words == 3000
    assert policy.min_examples == 3
    assert policy.languages == DEFAULT_LANGUAGES


def test_load_policy_file(tmp_path: Path) -> None:
    (tmp_path / POLICY_FILENAME).write_text(
        "\n".join(
            [
                "[maturity]",
                "growing_words = 500",
                "evergreen_words = 2000",
                "",
                "[examples]",
                "min_examples = 2",
                'languages = ["Python", "bash"]',
                "",
                "[links]",
                "strict = true",
                "backlinks_from_related_only = true",
                "",
                "[templates.shell-tool]",
                'required = ["summary", "flags"]',
            ]
        ),
        encoding="utf-8",
    )
    policy = load_policy(tmp_path)

    assert policy.maturity.growing_words == 500
    assert policy.maturity.evergreen_words == 2000
    assert policy.maturity.evergreen_examples == 3
    assert policy.min_examples == 2
    assert policy.languages == frozenset({"python", "bash"})
    assert policy.strict_links
    assert policy.backlinks_from_related_only
    assert policy.template_overrides == {"shell-tool": {"required": ["summary", "flags"]}}
    assert policy.source == tmp_path / POLICY_FILENAME


def test_invalid_toml(tmp_path: Path) -> None:
    (tmp_path / POLICY_FILENAME).write_text("[maturity\n", encoding="utf-8")
    with pytest.raises(PolicyError):
        load_policy(tmp_path)


@pytest.mark.parametrize(
    "data",
    [
        {"maturity": {"growing_words": -1}},
        {"maturity": {"growing_words": "many"}},
        {"maturity": {"growing_words": 5000}},
        {"examples": {"min_examples": True}},
        {"examples": {"languages": "python"}},
        {"links": {"strict": "yes"}},
        {"templates": {"standard": "summary"}},
    ],
)
def test_invalid_values(data: dict) -> None:
    with pytest.raises(PolicyError):
        parse_policy(data)
