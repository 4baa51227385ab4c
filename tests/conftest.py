import pytest

from helpers.utils import find_repo_root, load_survey_yaml
from survey_flow.library import SurveyLibrary
from survey_flow.models.answer import AnswerStore


@pytest.fixture(scope="session")
def survey_dir():
    return find_repo_root() / "surveys"


@pytest.fixture
def survey_yaml(survey_dir):
    """Raw authored YAML of a shipped survey, by name."""
    return lambda name: load_survey_yaml(survey_dir, name)


@pytest.fixture(scope="session")
def library(survey_dir):
    lib = SurveyLibrary(survey_dir)
    lib.load()
    return lib


@pytest.fixture(scope="session")
def car_tree(library):
    return library.get_tree("car_ownership")


@pytest.fixture(scope="session")
def pet_tree(library):
    return library.get_tree("household_pets")


@pytest.fixture
def answers():
    return AnswerStore()
