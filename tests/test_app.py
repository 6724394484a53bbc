from backoffice import __version__


def test_health_check(client):
    response = client.get('/health')

    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'healthy'
    assert body['services'] == {'database': 'healthy', 'application': 'healthy'}
    assert body['version'] == __version__


def test_security_headers_on_every_response(client):
    for response in (client.get('/health'), client.get('/users'), client.get('/does-not-exist')):
        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options'] == 'DENY'
        assert response.headers['Referrer-Policy'] == 'strict-origin-when-cross-origin'
        assert 'Strict-Transport-Security' not in response.headers


def test_hsts_when_ssl_redirect_is_enabled(app, client):
    app.config['SECURE_SSL_REDIRECT'] = True

    response = client.get('/health')

    assert response.headers['Strict-Transport-Security'] == 'max-age=31536000; includeSubDomains'


def test_unknown_route_renders_json_error(client):
    response = client.get('/does-not-exist')

    assert response.status_code == 404
    body = response.get_json()
    assert body['error'] == 'Not Found'
    assert body['status_code'] == 404
    assert body['message']
