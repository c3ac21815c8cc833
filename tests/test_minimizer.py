import pytest

from conftest import PROJECT_ROOT

from schedule_pipeline.modules.minimizer import (
    Minimizer,
    ReplacementRule,
    apply_car_list_replacements,
    apply_replacements,
)


@pytest.fixture
def repo_minimizer() -> Minimizer:
    return Minimizer.from_file(PROJECT_ROOT / "replacements.yaml", active=True)


def test_inactive_minimizer_returns_input_unchanged(repo_minimizer):
    repo_minimizer.active = False
    assert repo_minimizer.track("Circuit de Spa-Francorchamps") == "Circuit de Spa-Francorchamps"
    assert repo_minimizer.car_list("A vs B") == "A vs B"


def test_replacements_ignore_case():
    rules = [ReplacementRule("circuit de spa-francorchamps", "Spa")]
    assert apply_replacements("Circuit de SPA-Francorchamps - Endurance", rules) == "Spa - Endurance"


def test_rules_apply_in_list_order():
    long_first = [
        ReplacementRule("Nürburgring Nordschleife", "Nordschleife"),
        ReplacementRule("Nürburgring", "Nurburg"),
    ]
    assert apply_replacements("Nürburgring Nordschleife", long_first) == "Nordschleife"
    assert (
        apply_replacements("Nürburgring Nordschleife", list(reversed(long_first)))
        == "Nurburg Nordschleife"
    )


def test_replacement_text_is_literal():
    rules = [ReplacementRule("Oval", r"\1 $0")]
    assert apply_replacements("Daytona Oval", rules) == r"Daytona \1 $0"


def test_empty_values_pass_through():
    rules = [ReplacementRule("x", "y")]
    assert apply_replacements("", rules) == ""
    assert apply_replacements(None, rules) is None
    assert apply_car_list_replacements(None, rules) is None


@pytest.mark.parametrize(
    "cars, expected",
    [
        ("Porsche 911 GT3 Cup (992) vs Audi RS 3 LMS TCR", "Porsche Cup / Touring Cars"),
        ("Toyota GR86/Mazda MX-5 Cup", "Toyota GR86 / Mazda MX-5 Cup"),
        ("Toyota GR86, Porsche 911 GT3 Cup (992)", "Toyota GR86 / Porsche Cup"),
        ("BMW M4 GT4", "BMW M4 GT4"),
    ],
)
def test_car_lists_are_minimized_per_car(repo_minimizer, cars, expected):
    assert repo_minimizer.car_list(cars) == expected


@pytest.mark.parametrize(
    "track, expected",
    [
        ("Circuit de Spa-Francorchamps", "Spa"),
        ("Okayama International Circuit", "Okayama"),
        ("Nürburgring Nordschleife", "Nordschleife"),
        ("Lime Rock Park", "Lime Rock Park"),
    ],
)
def test_repository_track_rules(repo_minimizer, track, expected):
    assert repo_minimizer.track(track) == expected


def test_repository_config_rules(repo_minimizer):
    assert repo_minimizer.config("Grand Prix") == "GP"
    assert repo_minimizer.config("Full Course") == "Full"


def test_from_file_skips_malformed_rules(tmp_path):
    rules_file = tmp_path / "rules.yaml"
    rules_file.write_text(
        "track_names:\n"
        "  - original: Lime Rock Park\n"
        "    replacement: Lime Rock\n"
        "  - just a string\n"
        "cars:\n"
        "  - replacement: missing original\n",
        encoding="utf-8",
    )
    minimizer = Minimizer.from_file(rules_file, active=True)
    assert minimizer.track_names == [ReplacementRule("Lime Rock Park", "Lime Rock")]
    assert minimizer.track_configs == []
    assert minimizer.cars == []


def test_from_file_requires_the_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Minimizer.from_file(tmp_path / "missing.yaml")
