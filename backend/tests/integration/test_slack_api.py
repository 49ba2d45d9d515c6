import json

from app.db import models
from app.services.slack_messages import HELP_TEXT


def command(client, text='', user_id='U1', **extra):
    data = {'command': '/effort', 'text': text, 'user_id': user_id, 'team_id': 'T1', 'channel_id': 'C1'}
    data.update(extra)
    return client.post('/api/slack/commands', data=data)


def link_slack(db_session, email, slack_user_id='U1'):
    user = db_session.query(models.User).filter_by(email=email).one()
    db_session.add(models.SlackUser(user_id=user.id, slack_user_id=slack_user_id, slack_team_id='T1'))
    db_session.commit()
    return user


def create_effort(client, headers, name='Platform Work'):
    r = client.post('/api/effort', json={'name': name, 'workstreams': [{'name': 'Eng', 'effort': 60}, {'name': 'QA', 'effort': 40}]}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def submission(values, user_id='U1', callback_id='create_effort'):
    payload = {'type': 'view_submission', 'user': {'id': user_id}, 'view': {'callback_id': callback_id, 'state': {'values': values}}}
    return {'payload': json.dumps(payload)}


def modal_values(name='Launch', workstreams='Engineering, 60\nDesign, 25\nQA, 15', description=None):
    values = {
        'effort_name_block': {'effort_name_input': {'value': name}},
        'workstreams_block': {'workstreams_input': {'value': workstreams}},
    }
    if description:
        values['description_block'] = {'description_input': {'value': description}}
    return values


# --- slash commands ---

def test_help_for_empty_and_unknown_subcommands(client):
    for text in ('', 'help', 'dance'):
        body = command(client, text).json()
        assert body == {'response_type': 'ephemeral', 'text': HELP_TEXT}


def test_other_slash_command_is_unknown(client):
    r = client.post('/api/slack/commands', data={'command': '/other', 'text': '', 'user_id': 'U1'})
    assert r.json()['text'] == 'Unknown command'


def test_unlinked_user_gets_link_button(client):
    body = command(client, 'list').json()
    assert body['response_type'] == 'ephemeral'
    button = body['blocks'][0]['accessory']
    assert button['url'] == 'http://testserver/api/slack/link?slack_user_id=U1'


def test_list_view_and_share_for_linked_user(client, auth_headers, db_session):
    headers = auth_headers()
    effort = create_effort(client, headers)
    link_slack(db_session, 'owner@example.com')

    listed = command(client, 'list').json()
    assert 'Platform Work' in listed['text']

    view = command(client, 'view platform work').json()
    assert view['response_type'] == 'ephemeral'
    types = [b['type'] for b in view['blocks']]
    assert types == ['header', 'image', 'section', 'section']
    assert f"graphId={effort['id']}" in view['blocks'][1]['image_url']
    assert '&t=' in view['blocks'][1]['image_url']
    assert view['blocks'][3]['text']['text'] == '• *Eng*: 60.0%\n• *QA*: 40.0%'

    shared = command(client, 'share Platform Work').json()
    assert shared['response_type'] == 'in_channel'
    button = shared['blocks'][-1]['elements'][0]
    assert button['text']['text'] == 'View Interactive Chart'
    assert button['url'].startswith('http://testserver/share/')
    assert button['url'].endswith('?source=slack')

    # sharing again reuses the active share
    again = command(client, 'share Platform Work').json()
    assert again['blocks'][-1]['elements'][0]['url'] == button['url']


def test_view_and_share_truncate_long_graph_name(client, auth_headers, db_session):
    auth_headers()
    user = link_slack(db_session, 'owner@example.com')
    # stored directly: the API caps new names at 150 characters
    long_name = 'x' * 151
    graph = models.EffortGraph(name=long_name, author_id=user.id)
    db_session.add(graph)
    db_session.flush()
    db_session.add(models.Workstream(graph_id=graph.id, name='Eng', effort=1, color='#3b82f6'))
    db_session.commit()

    view = command(client, f'view {long_name}').json()
    header = view['blocks'][0]['text']['text']
    assert view['blocks'][0]['type'] == 'header'
    assert len(header) == 150
    assert header.endswith('…')

    shared = command(client, f'share {long_name}').json()
    assert shared['response_type'] == 'in_channel'
    assert shared['blocks'][0]['text']['text'] == header
    assert db_session.query(models.SharedEffort).filter_by(graph_id=graph.id).count() == 1


def test_view_unknown_name(client, auth_headers, db_session):
    auth_headers()
    link_slack(db_session, 'owner@example.com')
    body = command(client, 'view Nothing').json()
    assert 'No effort named "Nothing"' in body['text']


def test_viewer_cannot_share(client, auth_headers, db_session):
    owner = auth_headers()
    auth_headers('viewer@example.com')
    effort = create_effort(client, owner)
    client.post(f"/api/effort/{effort['id']}/permissions", json={'user_email': 'viewer@example.com', 'permission_level': 'viewer'}, headers=owner)
    link_slack(db_session, 'viewer@example.com', 'U2')
    body = command(client, 'share Platform Work', user_id='U2').json()
    assert body['text'] == 'You need editor access to share this effort.'


def test_new_opens_modal(client, auth_headers, db_session, slack_client):
    auth_headers()
    link_slack(db_session, 'owner@example.com')
    r = command(client, 'new', trigger_id='trig-1')
    assert r.status_code == 200
    assert r.content == b''
    [(trigger, view)] = slack_client.opened_views
    assert trigger == 'trig-1'
    assert view['callback_id'] == 'create_effort'


def test_new_without_trigger(client, auth_headers, db_session):
    auth_headers()
    link_slack(db_session, 'owner@example.com')
    assert 'missing trigger' in command(client, 'new').json()['text']


def test_unexpected_failure_is_a_polite_ephemeral(client, auth_headers, db_session, slack_client):
    auth_headers()
    link_slack(db_session, 'owner@example.com')

    def boom(trigger_id, view):
        raise RuntimeError('boom')

    slack_client.open_view = boom
    body = command(client, 'new', trigger_id='t').json()
    assert body == {'response_type': 'ephemeral', 'text': 'Sorry, something went wrong.'}


# --- interactions ---

def test_modal_submission_creates_effort_and_prerenders(client, auth_headers, db_session, renderer, chart_store):
    auth_headers()
    user = link_slack(db_session, 'owner@example.com')
    r = client.post('/api/slack/interactions', data=submission(modal_values(description='Q4 launch')))
    assert r.status_code == 200
    assert r.json() == {'response_action': 'clear'}

    graph = db_session.query(models.EffortGraph).filter_by(author_id=user.id).one()
    assert graph.name == 'Launch'
    assert graph.description == 'Q4 launch'
    efforts = [ws.effort for ws in db_session.query(models.Workstream).filter_by(graph_id=graph.id).order_by(models.Workstream.created_at)]
    assert efforts == [60.0, 25.0, 15.0]
    # background pre-render ran with refresh
    assert len(renderer.calls) == 1
    assert len(chart_store.blobs) == 1


def test_modal_validation_errors_target_workstreams_field(client, auth_headers, db_session):
    auth_headers()
    link_slack(db_session, 'owner@example.com')
    r = client.post('/api/slack/interactions', data=submission(modal_values(workstreams='Engineering 60\nDesign, 40')))
    assert r.json() == {
        'response_action': 'errors',
        'errors': {'workstreams_input': 'Line 1: Invalid format. Expected "name, percentage"'},
    }
    assert db_session.query(models.EffortGraph).count() == 0


def test_modal_from_unlinked_user(client):
    r = client.post('/api/slack/interactions', data=submission(modal_values(), user_id='U404'))
    body = r.json()
    assert body['response_action'] == 'errors'
    assert 'effort_name' in body['errors']


def test_other_interaction_types_are_acknowledged(client):
    r = client.post('/api/slack/interactions', data={'payload': json.dumps({'type': 'block_actions'})})
    assert r.status_code == 200
    assert r.json() == {}


def test_unreadable_payload_is_reported_on_name_field(client):
    r = client.post('/api/slack/interactions', data={'payload': 'not json'})
    assert r.status_code == 200
    assert r.json()['errors'] == {'effort_name': 'Something went wrong. Please try again.'}


def test_events_url_verification(client):
    r = client.post('/api/slack/events', json={'type': 'url_verification', 'challenge': 'abc'})
    assert r.json() == {'challenge': 'abc'}
    assert client.post('/api/slack/events', json={'type': 'event_callback', 'event': {'type': 'app_mention'}}).json() == {'ok': True}


# --- account linking ---

def _start(client, state_store):
    r = client.get('/api/slack/link?slack_user_id=U123', follow_redirects=False)
    assert r.status_code == 307
    assert r.headers['location'].startswith('https://slack.com/oauth/v2/authorize')
    assert state_store.size() == 1
    return r.headers['location'].split('state=')[1].split('&')[0]


def test_callback_without_login_sets_pending_cookie_then_complete(client, auth_headers, state_store, db_session):
    state = _start(client, state_store)
    r = client.get(f'/api/slack/oauth/callback?code=c1&state={state}', follow_redirects=False)
    assert r.status_code == 307
    assert r.headers['location'] == 'http://testserver/?slack_pending=true'
    set_cookie = r.headers['set-cookie']
    assert 'slack_oauth_data=' in set_cookie
    assert 'HttpOnly' in set_cookie
    assert 'Max-Age=600' in set_cookie

    headers = auth_headers()
    assert client.get('/api/slack/check-link', headers=headers).json() == {'linked': False}
    r = client.post('/api/slack/link/complete', headers=headers)
    assert r.status_code == 200, r.text
    assert r.json() == {'linked': True, 'slackUserId': 'U123'}
    assert client.get('/api/slack/check-link', headers=headers).json() == {'linked': True, 'slackUserId': 'U123'}

    row = db_session.query(models.SlackUser).one()
    assert row.slack_access_token_encrypted and 'xoxp-c1' not in row.slack_access_token_encrypted


def test_callback_with_login_links_immediately(client, auth_headers, state_store):
    headers = auth_headers()
    state = _start(client, state_store)
    r = client.get(f'/api/slack/oauth/callback?code=c2&state={state}', headers=headers, follow_redirects=False)
    assert r.headers['location'] == 'http://testserver/?slack_linked=true'
    assert client.get('/api/slack/check-link', headers=headers).json()['linked'] is True


def test_callback_failures_redirect_with_error_code(client, state_store):
    r = client.get('/api/slack/oauth/callback?error=access_denied', follow_redirects=False)
    assert r.headers['location'] == 'http://testserver/?error=slack_auth_failed'
    r = client.get('/api/slack/oauth/callback?state=x', follow_redirects=False)
    assert r.headers['location'] == 'http://testserver/?error=missing_code'
    r = client.get('/api/slack/oauth/callback?code=c&state=forged', follow_redirects=False)
    assert r.headers['location'] == 'http://testserver/?error=invalid_state'


def test_complete_without_pending_cookie_is_400(client, auth_headers):
    r = client.post('/api/slack/link/complete', headers=auth_headers())
    assert r.status_code == 400
    assert r.json()['detail']['code'] == 'NO_PENDING_LINK'
