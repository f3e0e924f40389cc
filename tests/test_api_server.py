"""
test_api_server.py
~~~~~~~~~~~~~~~~~~

Tests for the REST API around in-memory networks.
"""

import threading

import pytest

from densenn import api_server


@pytest.fixture
def client():
    """Flask test client with an empty network registry."""
    api_server.active_networks.clear()
    api_server.app.config['TESTING'] = True
    with api_server.app.test_client() as client:
        yield client
    api_server.active_networks.clear()


@pytest.fixture
def network_id(client):
    """Create a seeded 2-2-1 network and return its id."""
    response = client.post('/api/networks', json={'layer_sizes': [2, 2, 1], 'seed': 42})
    assert response.status_code == 201
    return response.get_json()['network_id']


@pytest.mark.unit
class TestNetworkManagement:
    """Test creating, listing and deleting networks."""

    def test_status(self, client):
        """Test that the status endpoint reports the network count."""
        response = client.get('/api/status')

        assert response.status_code == 200
        assert response.get_json() == {'status': 'online', 'active_networks': 0}

    def test_create_default_network(self, client):
        """Test that an empty body creates a 2-2-1 network."""
        response = client.post('/api/networks')

        assert response.status_code == 201
        data = response.get_json()
        assert data['architecture'] == [2, 2, 1]
        assert data['status'] == 'created'
        assert data['network_id'] in api_server.active_networks

    @pytest.mark.parametrize("body", [
        {'layer_sizes': [2]},
        {'layer_sizes': 'big'},
        {'layer_sizes': [2, 0, 1]},
        {'layer_sizes': [2, 1], 'seed': -3},
    ])
    def test_create_invalid_network(self, client, body):
        """Test that invalid architectures or seeds are rejected with 400."""
        response = client.post('/api/networks', json=body)

        assert response.status_code == 400
        assert 'error' in response.get_json()
        assert api_server.active_networks == {}

    def test_list_networks(self, client, network_id):
        """Test that listed networks include shapes and training state."""
        response = client.get('/api/networks')

        networks = response.get_json()['networks']
        assert len(networks) == 1
        assert networks[0]['network_id'] == network_id
        assert networks[0]['weights_shape'] == [[2, 2], [1, 2]]
        assert networks[0]['biases_shape'] == [[2, 1], [1, 1]]
        assert networks[0]['trained'] is False

    def test_get_network_parameters(self, client, network_id):
        """Test that parameters are returned as nested lists in [0, 1)."""
        response = client.get(f'/api/networks/{network_id}')

        layers = response.get_json()['layers']
        assert len(layers) == 2
        assert len(layers[0]['weights']) == 2
        assert all(0.0 <= w < 1.0 for row in layers[0]['weights'] for w in row)

    def test_unknown_network(self, client):
        """Test that unknown ids answer 404."""
        assert client.get('/api/networks/missing').status_code == 404
        assert client.delete('/api/networks/missing').status_code == 404
        assert client.post('/api/networks/missing/infer', json={'input': [0, 1]}).status_code == 404
        assert client.post('/api/networks/missing/train').status_code == 404

    def test_delete_network(self, client, network_id):
        """Test deleting a single network."""
        response = client.delete(f'/api/networks/{network_id}')

        assert response.status_code == 200
        assert network_id not in api_server.active_networks

    def test_delete_all_networks(self, client, network_id):
        """Test deleting every network."""
        client.post('/api/networks')

        response = client.delete('/api/networks')

        assert response.get_json()['deleted_count'] == 2
        assert api_server.active_networks == {}

    def test_randomize_is_seeded(self, client, network_id):
        """Test that randomizing with a seed is reproducible."""
        client.post(f'/api/networks/{network_id}/randomize', json={'seed': 5})
        first = client.get(f'/api/networks/{network_id}').get_json()['layers']
        client.post(f'/api/networks/{network_id}/randomize', json={'seed': 5})
        second = client.get(f'/api/networks/{network_id}').get_json()['layers']

        assert first == second


@pytest.mark.unit
class TestInferenceEndpoints:
    """Test inference and evaluation over HTTP."""

    def test_infer(self, client, network_id):
        """Test that inference returns one output in (0, 1)."""
        response = client.post(f'/api/networks/{network_id}/infer', json={'input': [0, 1]})

        assert response.status_code == 200
        output = response.get_json()['output']
        assert len(output) == 1
        assert 0.0 < output[0] < 1.0

    @pytest.mark.parametrize("body", [
        {'input': [0, 1, 1]},
        {'input': 'x'},
        {},
        {'input': [None, 1]},
        {'input': [[0, 1]]},
    ])
    def test_infer_invalid_input(self, client, network_id, body):
        """Test that a missing, mis-sized, null-holding or nested input answers 400."""
        response = client.post(f'/api/networks/{network_id}/infer', json=body)
        assert response.status_code == 400

    def test_evaluate_default_xor(self, client, network_id):
        """Test that evaluation defaults to the XOR dataset."""
        response = client.post(f'/api/networks/{network_id}/evaluate')

        data = response.get_json()
        assert response.status_code == 200
        assert [case['expected'] for case in data['cases']] == [[0.0], [1.0], [1.0], [0.0]]
        assert data['cost'] > 0.0

    def test_evaluate_incompatible_dataset(self, client, network_id):
        """Test that a dataset of the wrong width answers 400."""
        response = client.post(
            f'/api/networks/{network_id}/evaluate',
            json={'dataset': [[1, 2, 3, 4, 5, 6]]}
        )
        assert response.status_code == 400

    def test_evaluate_dataset_with_null(self, client, network_id):
        """Test that a dataset containing null answers 400."""
        response = client.post(
            f'/api/networks/{network_id}/evaluate',
            json={'dataset': [[None, 0, 0], [0, 1, 1]]}
        )
        assert response.status_code == 400


@pytest.mark.integration
class TestTrainingEndpoint:
    """Test training over HTTP."""

    def test_train_reduces_cost(self, client, network_id):
        """Test that training lowers the XOR cost and marks the network trained."""
        response = client.post(
            f'/api/networks/{network_id}/train',
            json={'epochs': 500, 'learning_rate': 0.5}
        )

        data = response.get_json()
        assert response.status_code == 200
        assert data['status'] == 'completed'
        assert data['final_cost'] < data['initial_cost']

        listed = client.get('/api/networks').get_json()['networks'][0]
        assert listed['trained'] is True
        assert listed['cost'] == pytest.approx(data['final_cost'])

    def test_train_full_batch_cross_entropy(self, client, network_id):
        """Test full-batch training with the cross-entropy cost."""
        response = client.post(
            f'/api/networks/{network_id}/train',
            json={'epochs': 300, 'mini_batch_size': None, 'cost': 'cross_entropy'}
        )

        data = response.get_json()
        assert response.status_code == 200
        assert data['final_cost'] < data['initial_cost']

    @pytest.mark.parametrize("body", [
        {'epochs': 0},
        {'epochs': 'many'},
        {'epochs': 10, 'learning_rate': -1},
        {'epochs': 10, 'mini_batch_size': 0},
        {'epochs': 10, 'cost': 'hinge'},
        {'epochs': 10, 'dataset': [[1, 0]]},
        {'epochs': 10, 'dataset': 'xor'},
        {'epochs': 10, 'shuffle': 'false'},
        {'epochs': 10, 'shuffle': 1},
        {'epochs': 10, 'dataset': [[None, 0, 0], [0, 1, 1]]},
    ])
    def test_train_invalid_request(self, client, network_id, body):
        """Test that invalid training requests answer 400 and leave the network untrained."""
        response = client.post(f'/api/networks/{network_id}/train', json=body)

        assert response.status_code == 400
        assert api_server.active_networks[network_id]['trained'] is False

    def test_rejected_dataset_leaves_parameters_unchanged(self, client, network_id):
        """Test that a dataset holding null is refused before any weight is touched."""
        before = client.get(f'/api/networks/{network_id}').get_json()['layers']

        response = client.post(
            f'/api/networks/{network_id}/train',
            json={'epochs': 2, 'dataset': [[None, 0, 0], [0, 1, 1]]}
        )

        after = client.get(f'/api/networks/{network_id}').get_json()['layers']
        assert response.status_code == 400
        assert after == before

    def test_shuffle_flag(self, client, network_id):
        """Test that a boolean shuffle flag is accepted."""
        response = client.post(
            f'/api/networks/{network_id}/train',
            json={'epochs': 20, 'shuffle': True, 'seed': 1}
        )
        assert response.status_code == 200


@pytest.mark.integration
class TestRequestSerialization:
    """Test that requests on the same network run one at a time."""

    def test_each_network_has_its_own_lock(self, client, network_id):
        """Test that every registered network carries a separate lock."""
        other_id = client.post('/api/networks').get_json()['network_id']

        first = api_server.active_networks[network_id]['lock']
        second = api_server.active_networks[other_id]['lock']
        assert first is not second

    def test_train_waits_for_network_lock(self, client, network_id):
        """Test that training does not start while another request holds the network."""
        lock = api_server.active_networks[network_id]['lock']
        responses = []

        def train():
            with api_server.app.test_client() as other:
                responses.append(
                    other.post(f'/api/networks/{network_id}/train', json={'epochs': 5})
                )

        worker = threading.Thread(target=train)
        lock.acquire()
        try:
            worker.start()
            worker.join(timeout=0.5)

            assert worker.is_alive()
            assert api_server.active_networks[network_id]['trained'] is False
        finally:
            lock.release()

        worker.join(timeout=30)
        assert not worker.is_alive()
        assert responses[0].status_code == 200
        assert api_server.active_networks[network_id]['trained'] is True

    def test_delete_waits_for_network_lock(self, client, network_id):
        """Test that a network is not removed while a request is still using it."""
        lock = api_server.active_networks[network_id]['lock']
        responses = []

        def delete():
            with api_server.app.test_client() as other:
                responses.append(other.delete(f'/api/networks/{network_id}'))

        worker = threading.Thread(target=delete)
        lock.acquire()
        try:
            worker.start()
            worker.join(timeout=0.5)

            assert worker.is_alive()
            assert network_id in api_server.active_networks
        finally:
            lock.release()

        worker.join(timeout=30)
        assert responses[0].status_code == 200
        assert network_id not in api_server.active_networks
