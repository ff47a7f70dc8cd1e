import pytest

from anime_sync.core.graphql import GraphQLClient
from anime_sync.stores.title_matcher import TitleMatcher


@pytest.mark.integration
def test_anilist_gql_search_minimal():
    q = """
    query ($q: String){
      Page(perPage: 1) { media(search: $q, type: ANIME){ id title { romaji } } }
    }
    """
    data = GraphQLClient().execute(q, {"q": "One Piece"})
    media = data.get("Page", {}).get("media", [])
    assert isinstance(media, list)


@pytest.mark.integration
def test_match_title_live():
    matcher = TitleMatcher(GraphQLClient())
    assert matcher.match("Fullmetal Alchemist: Brotherhood") == 5114
