import pytest

from conftest import NAMESPACE, received
from quizroom.models import ChatMessage
from quizroom.services.chat import recent_history, sanitize_message, save_message
from quizroom.services.identity import AuthenticationError, TokenVerifier


@pytest.fixture()
def verifier(flask_app):
    return flask_app.extensions['identity_verifier']


def authenticate(test_client, verifier, uid='u1', name='Ana'):
    test_client.emit('user:authenticate', verifier.issue(uid, name), namespace=NAMESPACE)
    return received(test_client)


def test_token_roundtrip_and_rejections():
    verifier = TokenVerifier('secret')
    identity = verifier.verify(verifier.issue('42', 'Zoe'))
    assert identity.uid == '42'
    assert identity.name == 'Zoe'
    assert verifier.verify(verifier.issue('7')).name == 'Anonymous'
    with pytest.raises(AuthenticationError):
        verifier.verify('not-a-token')
    with pytest.raises(AuthenticationError):
        verifier.verify(None)
    with pytest.raises(AuthenticationError):
        TokenVerifier('other-secret').verify(verifier.issue('42', 'Zoe'))


def test_sanitize_strips_tags_and_escapes():
    assert sanitize_message('<b>hello</b> <script>x()</script>there') == 'hello x()there'
    assert sanitize_message('fish & chips') == 'fish &amp; chips'
    assert sanitize_message('<i></i>   ') == ''
    assert sanitize_message(None) == ''
    assert sanitize_message('abcdef', max_length=3) == 'abc'


def test_sanitize_limit_applies_to_escaped_text():
    assert sanitize_message('&' * 10, max_length=10) == '&amp;&amp;'
    assert sanitize_message('ab&cd', max_length=4) == 'ab'
    assert len(sanitize_message('<b>' + '"' * 600 + '</b>')) <= 500


def test_sanitize_keeps_line_breaks():
    assert sanitize_message('line one\nline two') == 'line one\nline two'
    assert sanitize_message('<p>a</p>\n\n<p>b</p>') == 'a\n\nb'


def test_history_is_oldest_first_and_limited(flask_app):
    for i in range(5):
        save_message('general', 'u1', 'Ana', f'm{i}')
    history = recent_history('general', limit=3)
    assert [m.message for m in history] == ['m2', 'm3', 'm4']
    assert recent_history('other') == []


def test_authenticate_success(connect, verifier):
    c = connect()
    events = authenticate(c, verifier)
    assert events == [('auth:success', {'uid': 'u1', 'nickname': 'Ana'})]


def test_authenticate_failure_disconnects(connect):
    c = connect()
    c.emit('user:authenticate', 'garbage', namespace=NAMESPACE)
    assert [name for name, _ in received(c)] == ['auth:error']
    assert not c.is_connected(NAMESPACE)


def test_verified_name_is_used_for_rooms(connect, verifier):
    host = connect()
    authenticate(host, verifier, uid='u9', name='Verified Host')
    host.emit('createRoom', {'questions': []}, namespace=NAMESPACE)
    created = received(host, 'roomCreated')[0]
    assert created['players'][0]['nickname'] == 'Verified Host'


def test_set_nickname_is_used_when_joining(connect, registry):
    host = connect()
    host.emit('createRoom', {}, namespace=NAMESPACE)
    code = received(host, 'roomCreated')[0]['roomCode']
    guest = connect()
    guest.emit('user:setNickname', 'Nick', namespace=NAMESPACE)
    guest.emit('joinRoom', code, namespace=NAMESPACE)
    success = received(guest, 'joinSuccess')[0]
    assert success['players'][-1]['nickname'] == 'Nick'


def test_chat_requires_authentication(connect, flask_app):
    c = connect()
    c.emit('chat:joinTopic', 'general', namespace=NAMESPACE)
    c.emit('chat:sendMessage', {'topic': 'general', 'message': 'hi'}, namespace=NAMESPACE)
    assert received(c) == []
    assert ChatMessage.query.count() == 0


def test_chat_broadcast_and_history(connect, verifier):
    ana = connect()
    authenticate(ana, verifier, uid='u1', name='Ana')
    ana.emit('chat:joinTopic', 'general', namespace=NAMESPACE)
    assert received(ana, 'chat:history') == [[]]

    ana.emit('chat:sendMessage', {'topic': 'general', 'message': '<b>hello</b>'}, namespace=NAMESPACE)
    messages = received(ana, 'server:newMessage')
    assert len(messages) == 1
    assert messages[0]['message'] == 'hello'
    assert messages[0]['senderId'] == 'u1'
    assert messages[0]['senderNickname'] == 'Ana'

    ana.emit('chat:sendMessage', {'topic': 'general', 'message': '<p> </p>'}, namespace=NAMESPACE)
    assert received(ana) == []

    bo = connect()
    authenticate(bo, verifier, uid='u2', name='Bo')
    bo.emit('chat:joinTopic', 'general', namespace=NAMESPACE)
    history = received(bo, 'chat:history')[0]
    assert [m['message'] for m in history] == ['hello']

    ana.emit('chat:leaveTopic', 'general', namespace=NAMESPACE)
    bo.emit('chat:sendMessage', {'topic': 'general', 'message': 'bye'}, namespace=NAMESPACE)
    assert received(ana) == []
    assert received(bo, 'server:newMessage')[0]['message'] == 'bye'
