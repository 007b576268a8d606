# AniList GraphQL documents.
# Every document takes $type (ANIME | MANGA) so anime, manga and novels share
# one set; AniList answers null for fields that do not apply to a type.
# Manga vs. novel is narrowed with $format_in.

MEDIA_CARD_FRAGMENT = """
fragment mediaCard on Media {
  id
  idMal
  title { romaji english native }
  type
  format
  status
  coverImage { large }
  bannerImage
  isAdult
  averageScore
  popularity
  genres
  episodes
  season
  seasonYear
  nextAiringEpisode { airingAt timeUntilAiring episode }
  chapters
  volumes
  countryOfOrigin
}
"""

MEDIA_DETAIL_FRAGMENT = """
fragment mediaDetail on Media {
  ...mediaCard
  description
  meanScore
  synonyms
  tags { id name rank isMediaSpoiler }
  favourites
  source
  duration
  studios(isMain: true) { nodes { id name } }
  trailer { id site }
  staff(perPage: 10, sort: [RELEVANCE]) {
    edges {
      role
      node { id name { full } }
    }
  }
}
"""

PAGE_INFO_FIELDS = "pageInfo { total currentPage lastPage hasNextPage perPage }"

MEDIA_INFO_QS = (
    """
query ($id: Int, $type: MediaType) {
  Media(id: $id, type: $type) {
    ...mediaDetail
  }
}
"""
    + MEDIA_DETAIL_FRAGMENT
    + MEDIA_CARD_FRAGMENT
)

MEDIA_BATCH_QS = (
    """
query ($ids: [Int], $type: MediaType, $format_in: [MediaFormat], $perPage: Int) {
  Page(page: 1, perPage: $perPage) {
    media(id_in: $ids, type: $type, format_in: $format_in) {
      ...mediaCard
    }
  }
}
"""
    + MEDIA_CARD_FRAGMENT
)

MEDIA_COVERS_BATCH_QS = """
query ($ids: [Int], $type: MediaType, $format_in: [MediaFormat], $perPage: Int) {
  Page(page: 1, perPage: $perPage) {
    media(id_in: $ids, type: $type, format_in: $format_in) {
      id
      format
      coverImage { large }
    }
  }
}
"""

MEDIA_SEARCH_QS = (
    """
query ($search: String, $type: MediaType, $format_in: [MediaFormat], $page: Int, $perPage: Int) {
  Page(page: $page, perPage: $perPage) {
    %s
    media(search: $search, type: $type, format_in: $format_in, sort: [SEARCH_MATCH]) {
      ...mediaCard
    }
  }
}
"""
    % PAGE_INFO_FIELDS
    + MEDIA_CARD_FRAGMENT
)

MEDIA_CRITERIA_QS = (
    """
query (
  $type: MediaType
  $genres: [String]
  $format_in: [MediaFormat]
  $status: MediaStatus
  $season: MediaSeason
  $seasonYear: Int
  $countryOfOrigin: CountryCode
  $page: Int
  $perPage: Int
  $sort: [MediaSort]
) {
  Page(page: $page, perPage: $perPage) {
    %s
    media(
      type: $type
      genre_in: $genres
      format_in: $format_in
      status: $status
      season: $season
      seasonYear: $seasonYear
      countryOfOrigin: $countryOfOrigin
      sort: $sort
    ) {
      ...mediaCard
    }
  }
}
"""
    % PAGE_INFO_FIELDS
    + MEDIA_CARD_FRAGMENT
)

# One round trip for a whole detail view.
MEDIA_OVERVIEW_QS = """
query ($id: Int, $type: MediaType) {
  Media(id: $id, type: $type) {
    id
    format
    averageScore
    meanScore
    relations {
      edges {
        id
        relationType
        node {
          id
          type
          format
          title { romaji english native }
          coverImage { large }
          status
          episodes
          chapters
          volumes
          averageScore
        }
      }
    }
    characters(page: 1, perPage: 6, sort: [ROLE, RELEVANCE]) {
      %(page_info)s
      edges {
        id
        role
        voiceActors(language: JAPANESE, sort: [RELEVANCE]) {
          id
          name { full native }
          image { large }
          languageV2
        }
        node {
          id
          name { full native }
          image { large }
        }
      }
    }
    staff(page: 1, perPage: 6, sort: [RELEVANCE]) {
      %(page_info)s
      edges {
        id
        role
        node {
          id
          name { full native }
          image { large }
          primaryOccupations
        }
      }
    }
    stats {
      scoreDistribution { score amount }
      statusDistribution { status amount }
    }
    rankings { id rank type format year season allTime context }
    recommendations(page: 1, perPage: 6, sort: [RATING_DESC]) {
      %(page_info)s
      edges {
        node {
          id
          rating
          mediaRecommendation {
            id
            type
            format
            title { romaji english native }
            coverImage { large }
            averageScore
            popularity
            favourites
            episodes
            chapters
          }
        }
      }
    }
  }
}
""" % {"page_info": PAGE_INFO_FIELDS}

MEDIA_STATISTICS_QS = """
query ($id: Int, $type: MediaType) {
  Media(id: $id, type: $type) {
    id
    format
    averageScore
    meanScore
    rankings { id rank type format year season allTime context }
    stats {
      scoreDistribution { score amount }
      statusDistribution { status amount }
    }
  }
}
"""

MEDIA_CHARACTERS_QS = """
query ($id: Int, $type: MediaType, $page: Int, $perPage: Int) {
  Media(id: $id, type: $type) {
    id
    format
    characters(page: $page, perPage: $perPage, sort: [ROLE, RELEVANCE]) {
      %s
      edges {
        id
        role
        node {
          id
          name { full native }
          image { large }
        }
      }
    }
  }
}
""" % PAGE_INFO_FIELDS

MEDIA_STAFF_QS = """
query ($id: Int, $type: MediaType, $page: Int, $perPage: Int) {
  Media(id: $id, type: $type) {
    id
    format
    staff(page: $page, perPage: $perPage, sort: [RELEVANCE]) {
      %s
      edges {
        id
        role
        node {
          id
          name { full native }
          image { large }
        }
      }
    }
  }
}
""" % PAGE_INFO_FIELDS
