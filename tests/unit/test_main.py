"""Unit tests for the text-driven command line entry point."""

import io
from pathlib import Path

import pytest

from cuisto.__main__ import load_recipe, main, parse_args

EXAMPLES = Path(__file__).parents[2] / "examples"


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep voice preferences out of the real home directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("CUISTO_MONGODB_URI", raising=False)


def feed_stdin(monkeypatch: pytest.MonkeyPatch, *lines: str) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("\n".join(lines) + "\n"))


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        """Test default values."""
        args = parse_args([])
        assert args.recipes == []
        assert args.profile == "dev"
        assert args.hands_free is False
        assert args.user is None

    def test_options(self) -> None:
        """Test every option is parsed."""
        args = parse_args(["a.yaml", "b.yaml", "--profile", "test", "--hands-free", "--user", "u1"])
        assert args.recipes == [Path("a.yaml"), Path("b.yaml")]
        assert args.profile == "test"
        assert args.hands_free is True
        assert args.user == "u1"


class TestLoadRecipe:
    """Tests for recipe files."""

    def test_load_example(self) -> None:
        """Test the shipped example recipe."""
        recipe = load_recipe(EXAMPLES / "pates.yaml")
        assert recipe.id == "pates-carbonara"
        assert recipe.title == "Pâtes carbonara"
        assert len(recipe.steps) == 5
        assert recipe.steps[1].duration == "5 min"

    def test_id_defaults_to_file_name(self, tmp_path: Path) -> None:
        """Test a recipe without id is named after its file."""
        path = tmp_path / "omelette.yaml"
        path.write_text("title: Omelette\nsteps:\n  - Battre les œufs\n", encoding="utf-8")
        assert load_recipe(path).id == "omelette"

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        """Test a file holding a list is rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_recipe(path)


class TestMain:
    """Tests for main()."""

    def test_dry_run(self) -> None:
        """Test dry run loads everything and exits."""
        assert main([str(EXAMPLES / "pates.yaml"), "--dry-run", "--profile", "test"]) == 0

    def test_missing_recipe(self, tmp_path: Path) -> None:
        """Test a missing recipe file fails."""
        assert main([str(tmp_path / "absent.yaml"), "--profile", "test"]) == 1

    def test_no_recipe(self) -> None:
        """Test at least one recipe is required."""
        assert main(["--profile", "test"]) == 1

    def test_missing_config(self, tmp_path: Path) -> None:
        """Test a missing config file fails."""
        assert main([str(EXAMPLES / "pates.yaml"), "--config", str(tmp_path / "none.yaml")]) == 1

    def test_console_session(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test typed transcripts drive the session."""
        feed_stdin(monkeypatch, "suivant", "lance le timer", ":timers", ":quit")

        assert main([str(EXAMPLES / "pates.yaml"), "--profile", "test"]) == 0

        out = capsys.readouterr().out
        assert ">> Étape 1. Porter une grande casserole" in out
        assert ">> Étape 2" in out
        assert ">> Timer de 5 minutes lancé" in out
        assert "Pâtes carbonara - Étape 2" in out

    def test_hands_free_console(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test hands-free mode narrates each step."""
        feed_stdin(monkeypatch, "suivant", ":hands-free")

        code = main([str(EXAMPLES / "pates.yaml"), "--profile", "test", "--hands-free"])

        out = capsys.readouterr().out
        assert code == 0
        assert ">> Mode mains libres activé pour Pâtes carbonara" in out
        assert ">> Étape 2. Faire revenir les lardons à la poêle Durée: 5 min." in out
        assert ">> Mode mains libres désactivé" in out

    def test_select_second_recipe(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test switching the recipe that receives commands."""
        feed_stdin(monkeypatch, ":select 2", "suivant", ":select 9")

        code = main(
            [str(EXAMPLES / "pates.yaml"), str(EXAMPLES / "boeuf.yaml"), "--profile", "test"]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "Voice commands now go to 'Bœuf bourguignon'" in out
        assert "Choose a recipe between 1 and 2" in out
