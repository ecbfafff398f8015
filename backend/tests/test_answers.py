import random

import pytest
import requests

from crocodile.game.answers import (
    DEFAULT_WORDS,
    ShikimoriAnswerSource,
    WordListAnswerSource,
    build_answer_source,
)
from crocodile.game.models import Answer


class FakeResponse:
    def __init__(self, payload=None, status_error=None, json_error=None):
        self._payload = payload
        self._status_error = status_error
        self._json_error = json_error

    def raise_for_status(self):
        if self._status_error:
            raise self._status_error

    def json(self):
        if self._json_error:
            raise self._json_error
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, json=None, timeout=None):
        self.requests.append({'url': url, 'json': json, 'timeout': timeout})
        if self.error:
            raise self.error
        return self.response


def _source(session):
    return ShikimoriAnswerSource(
        url='https://catalog.test/graphql',
        limit=50,
        timeout=3,
        session=session,
        rng=random.Random(1),
    )


def test_shikimori_builds_an_answer_from_a_title():
    session = FakeSession(FakeResponse({
        'data': {'animes': [
            {'id': '5114', 'name': 'Fullmetal Alchemist', 'russian': 'Стальной алхимик',
             'poster': {'originalUrl': 'https://img.test/5114.jpg'}},
        ]},
    }))

    answer = _source(session).fetch_answer()

    assert answer == Answer(
        label='Fullmetal Alchemist | Стальной алхимик',
        poster_url='https://img.test/5114.jpg',
        value='5114',
    )
    sent = session.requests[0]
    assert sent['url'] == 'https://catalog.test/graphql'
    assert sent['json']['variables'] == {'limit': 50, 'order': 'popularity'}
    assert 'animes' in sent['json']['query']
    assert sent['timeout'] == 3


def test_shikimori_skips_empty_label_parts():
    session = FakeSession(FakeResponse({
        'data': {'animes': [{'id': 1, 'name': 'Only Name', 'russian': None, 'poster': None}]},
    }))

    answer = _source(session).fetch_answer()

    assert answer.label == 'Only Name'
    assert answer.value == '1'
    assert answer.poster_url == ''


@pytest.mark.parametrize('session', [
    FakeSession(error=requests.ConnectionError('down')),
    FakeSession(error=requests.Timeout('slow')),
    FakeSession(FakeResponse(status_error=requests.HTTPError('502'))),
    FakeSession(FakeResponse(json_error=ValueError('not json'))),
    FakeSession(FakeResponse({'data': {'animes': []}})),
    FakeSession(FakeResponse({'errors': [{'message': 'bad query'}]})),
    FakeSession(FakeResponse({'data': {'animes': [{'name': 'no id'}]}})),
])
def test_shikimori_reports_unavailability(session, caplog):
    assert _source(session).fetch_answer() is None
    assert 'answer catalog' in caplog.text.lower()


def test_word_list_source_uses_the_words_given():
    source = WordListAnswerSource(['apple', 'pear'], rng=random.Random(2))
    answers = {source.fetch_answer().value for _ in range(20)}
    assert answers == {'apple', 'pear'}


def test_word_list_source_defaults():
    answer = WordListAnswerSource(rng=random.Random(2)).fetch_answer()
    assert answer.value in DEFAULT_WORDS
    assert answer.label == answer.value


def test_build_answer_source_from_config():
    class WordsConfig:
        ANSWER_SOURCE = 'words'
        ANSWER_WORDS = ['kite']

    class CatalogConfig:
        ANSWER_SOURCE = 'shikimori'
        ANSWER_SOURCE_URL = 'https://catalog.test/graphql'
        ANSWER_SOURCE_LIMIT = 10
        ANSWER_SOURCE_TIMEOUT_SEC = 2.0

    class BrokenConfig:
        ANSWER_SOURCE = 'oracle'

    words = build_answer_source(WordsConfig)
    assert isinstance(words, WordListAnswerSource)
    assert words.words == ['kite']

    catalog = build_answer_source(CatalogConfig)
    assert isinstance(catalog, ShikimoriAnswerSource)
    assert catalog.limit == 10

    with pytest.raises(ValueError):
        build_answer_source(BrokenConfig)
