"""
api_server.py
~~~~~~~~~~~~~

Flask-based REST API around in-memory feedforward networks.

This module provides endpoints for:
- Creating, listing and deleting networks
- Randomizing network parameters
- Running inference on a single input column
- Evaluating and training networks on a dataset (XOR by default)

Training runs synchronously inside the request. Each network carries its own
lock, so requests that touch the same network run one at a time while
requests on different networks proceed in parallel. Networks live in memory
only and are lost when the process exits.
"""

import os
import sys
import uuid
import logging
import threading
from typing import Dict, Any, List, Optional, Tuple

import numpy as np
from flask import Flask, request, jsonify
from flask_cors import CORS

from densenn.costs import get_cost
from densenn.dataset import xor_dataset
from densenn.matrix import Matrix, MatrixError
from densenn.network import Network

# ============================================================================
# LOGGING SETUP
# ============================================================================

def configure_logging() -> None:
    """
    Set up logging based on environment.

    - In production: Show fewer logs (less noise) but keep important logs
    - In development: Show more detailed logs for debugging
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    is_production = os.getenv('FLASK_ENV') == 'production'

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if is_production:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        # Per-epoch and per-case progress is only useful while developing
        logging.getLogger('densenn.network').setLevel(logging.WARNING)
        logging.getLogger('densenn.api_server').setLevel(logging.INFO)


configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# FLASK APP SETUP
# ============================================================================

app = Flask(__name__)
CORS(app, resources={r"/api/*": {"origins": "*"}})

# ============================================================================
# GLOBAL STATE
# ============================================================================

# Networks currently loaded in memory: {network_id: network_info}
# network_info holds the network, its training state and a lock that every
# handler reading or changing the network must hold
active_networks: Dict[str, Dict[str, Any]] = {}

DEFAULT_LAYER_SIZES = [2, 2, 1]
DEFAULT_EPOCHS = 1000
DEFAULT_LEARNING_RATE = 0.5
MAX_EPOCHS = 100000


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def matrix_to_float_list(matrix: Matrix) -> List[float]:
    """Flatten a matrix to a list of floats (for JSON serialization)."""
    return [float(val) for val in matrix]


def make_rng(seed: Any) -> np.random.Generator:
    """
    Build a random generator from an optional request seed.

    Raises:
        ValueError: If the seed is not a non-negative integer
    """
    if seed is None:
        return np.random.default_rng()
    if isinstance(seed, bool) or not isinstance(seed, int) or seed < 0:
        raise ValueError('seed must be a non-negative integer')
    return np.random.default_rng(seed)


def dataset_from_request(data: Dict[str, Any]) -> Matrix:
    """Read ``dataset`` (nested row lists) from a request body, defaulting to XOR."""
    rows = data.get('dataset')
    if rows is None:
        return xor_dataset()
    if not isinstance(rows, list):
        raise ValueError('dataset must be a list of rows')
    return Matrix.from_rows(rows, dtype=np.float64)


def new_network_info(net: Network) -> Dict[str, Any]:
    return {
        'network': net,
        'trained': False,
        'cost': None,
        'lock': threading.Lock()
    }


def describe_network(network_id: str, info: Dict[str, Any]) -> Dict[str, Any]:
    """Summary of a network suitable for listing."""
    net = info['network']
    return {
        'network_id': network_id,
        'architecture': net.sizes,
        'weights_shape': [list(layer.weights.shape) for layer in net.layers],
        'biases_shape': [list(layer.biases.shape) for layer in net.layers],
        'trained': info['trained'],
        'cost': info['cost']
    }


def get_network_info(network_id: str) -> Optional[Dict[str, Any]]:
    info = active_networks.get(network_id)
    if info is None:
        logger.warning(f"Request for non-existent network: {network_id}")
    return info


def not_found() -> Tuple[Any, int]:
    return jsonify({'error': 'Network not found'}), 404


def bad_request(message: str) -> Tuple[Any, int]:
    return jsonify({'error': message}), 400


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.route('/api/status', methods=['GET'])
def get_status():
    """Return server status and the number of networks in memory."""
    return jsonify({
        'status': 'online',
        'active_networks': len(active_networks)
    }), 200


@app.route('/api/networks', methods=['POST'])
def create_network():
    """
    Create a new neural network.

    Request body (all optional):
        {
            'layer_sizes': [2, 2, 1],
            'randomize': true,
            'seed': 42
        }

    Returns:
        JSON with network_id, architecture, and status
    """
    data = request.get_json(silent=True) or {}
    layer_sizes = data.get('layer_sizes', DEFAULT_LAYER_SIZES)
    randomize = data.get('randomize', True)

    # Validate: need at least input and output layers
    if not isinstance(layer_sizes, list) or len(layer_sizes) < 2:
        logger.warning(f"Invalid architecture requested: {layer_sizes}")
        return bad_request('Invalid architecture. Must have at least 2 layers.')

    try:
        rng = make_rng(data.get('seed'))
        net = Network(layer_sizes)
        if randomize:
            net.randomize_parameters(rng)
    except (MatrixError, ValueError) as e:
        logger.warning(f"Rejected network creation for {layer_sizes}: {e}")
        return bad_request(str(e))
    except Exception as e:
        logger.exception(f"Error creating network: {e}")
        return jsonify({'error': f'Failed to create network: {str(e)}'}), 500

    network_id = str(uuid.uuid4())
    active_networks[network_id] = new_network_info(net)

    logger.info(f"Created network {network_id} with architecture {layer_sizes}")

    return jsonify({
        'network_id': network_id,
        'architecture': layer_sizes,
        'status': 'created'
    }), 201


@app.route('/api/networks', methods=['GET'])
def list_networks():
    """List all networks in memory."""
    networks = [
        describe_network(network_id, info)
        for network_id, info in active_networks.items()
    ]
    logger.debug(f"Listing {len(networks)} network(s)")
    return jsonify({'networks': networks}), 200


@app.route('/api/networks/<network_id>', methods=['GET'])
def get_network(network_id: str):
    """Return a network's summary together with all of its parameters."""
    info = get_network_info(network_id)
    if info is None:
        return not_found()

    net = info['network']
    with info['lock']:
        payload = describe_network(network_id, info)
        payload['layers'] = [
            {
                'weights': layer.weights.to_list(),
                'biases': layer.biases.to_list()
            }
            for layer in net.layers
        ]
    return jsonify(payload), 200


@app.route('/api/networks/<network_id>', methods=['DELETE'])
def delete_network_endpoint(network_id: str):
    """Delete a network from memory once no request is using it."""
    info = active_networks.get(network_id)
    if info is None:
        logger.warning(f"Delete attempted for non-existent network: {network_id}")
        return not_found()

    with info['lock']:
        active_networks.pop(network_id, None)
    logger.info(f"Deleted network {network_id}")

    return jsonify({'network_id': network_id, 'deleted': True}), 200


@app.route('/api/networks', methods=['DELETE'])
def delete_all_networks():
    """Delete every network from memory."""
    deleted_count = 0
    for network_id, info in list(active_networks.items()):
        with info['lock']:
            if active_networks.pop(network_id, None) is not None:
                deleted_count += 1

    logger.info(f"Deleted all networks: {deleted_count} total")

    return jsonify({
        'deleted_count': deleted_count,
        'message': f'Successfully deleted {deleted_count} network(s)'
    }), 200


@app.route('/api/networks/<network_id>/randomize', methods=['POST'])
def randomize_network(network_id: str):
    """
    Redraw every weight and bias uniformly from [0, 1).

    Request body (optional):
        {'seed': 42}
    """
    info = get_network_info(network_id)
    if info is None:
        return not_found()

    data = request.get_json(silent=True) or {}
    try:
        rng = make_rng(data.get('seed'))
    except ValueError as e:
        return bad_request(str(e))

    with info['lock']:
        info['network'].randomize_parameters(rng)
        info['trained'] = False
        info['cost'] = None

    logger.info(f"Randomized parameters of network {network_id}")
    return jsonify({'network_id': network_id, 'status': 'randomized'}), 200


@app.route('/api/networks/<network_id>/infer', methods=['POST'])
def infer(network_id: str):
    """
    Run one input through the network.

    Request body:
        {'input': [0.0, 1.0]}

    Returns:
        JSON with the network output as a flat list
    """
    info = get_network_info(network_id)
    if info is None:
        return not_found()

    data = request.get_json(silent=True) or {}
    values = data.get('input')
    if not isinstance(values, list):
        return bad_request('input must be a list of numbers')

    try:
        with info['lock']:
            output = info['network'].feedforward(values)
    except MatrixError as e:
        logger.warning(f"Inference rejected for network {network_id}: {e}")
        return bad_request(str(e))
    except Exception as e:
        logger.exception(f"Error running inference on network {network_id}: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    return jsonify({
        'network_id': network_id,
        'output': matrix_to_float_list(output)
    }), 200


@app.route('/api/networks/<network_id>/evaluate', methods=['POST'])
def evaluate(network_id: str):
    """
    Run every case of a dataset through the network.

    Request body (optional):
        {'dataset': [[1, 0, 1, 1], ...], 'cost': 'quadratic'}

    Returns:
        JSON with per-case predicted/expected values and the total cost
    """
    info = get_network_info(network_id)
    if info is None:
        return not_found()

    data = request.get_json(silent=True) or {}
    net = info['network']

    try:
        dataset = dataset_from_request(data)
        cost = get_cost(data.get('cost', 'quadratic'))
        with info['lock']:
            results = net.evaluate(dataset)
            total_cost = net.total_cost(dataset, cost)
    except (MatrixError, ValueError) as e:
        logger.warning(f"Evaluation rejected for network {network_id}: {e}")
        return bad_request(str(e))
    except Exception as e:
        logger.exception(f"Error evaluating network {network_id}: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    return jsonify({
        'network_id': network_id,
        'cases': [
            {
                'case': result.index,
                'predicted': matrix_to_float_list(result.predicted),
                'expected': matrix_to_float_list(result.expected)
            }
            for result in results
        ],
        'cost': total_cost
    }), 200


@app.route('/api/networks/<network_id>/train', methods=['POST'])
def train_network(network_id: str):
    """
    Train a network and wait for the result.

    Request body (all optional):
        {
            'epochs': 1000,
            'learning_rate': 0.5,
            'mini_batch_size': 1,       # null for full-batch updates
            'cost': 'quadratic',
            'shuffle': false,
            'seed': 42,
            'dataset': [[...], ...]     # defaults to XOR
        }

    Returns:
        JSON with the cost before and after training
    """
    info = get_network_info(network_id)
    if info is None:
        return not_found()

    data = request.get_json(silent=True) or {}
    epochs = data.get('epochs', DEFAULT_EPOCHS)
    learning_rate = data.get('learning_rate', DEFAULT_LEARNING_RATE)
    mini_batch_size = data.get('mini_batch_size', 1)
    shuffle = data.get('shuffle', False)

    if isinstance(epochs, bool) or not isinstance(epochs, int) or not 0 < epochs <= MAX_EPOCHS:
        return bad_request(f'epochs must be an integer between 1 and {MAX_EPOCHS}')
    if not isinstance(shuffle, bool):
        return bad_request('shuffle must be true or false')

    net = info['network']

    try:
        dataset = dataset_from_request(data)
        cost = get_cost(data.get('cost', 'quadratic'))
        rng = make_rng(data.get('seed'))

        with info['lock']:
            initial_cost = net.total_cost(dataset, cost)
            logger.info(
                f"Training network {network_id}: epochs={epochs}, "
                f"batch_size={mini_batch_size}, lr={learning_rate}"
            )
            history = net.train(
                dataset,
                epochs,
                learning_rate=learning_rate,
                mini_batch_size=mini_batch_size,
                cost=cost,
                shuffle=shuffle,
                rng=rng
            )
            final_cost = history[-1]
            info['trained'] = True
            info['cost'] = final_cost
    except (MatrixError, ValueError) as e:
        logger.warning(f"Training rejected for network {network_id}: {e}")
        return bad_request(str(e))
    except Exception as e:
        logger.exception(f"Training failed for network {network_id}: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    logger.info(
        f"Training completed for network {network_id}: "
        f"cost {initial_cost:.6f} -> {final_cost:.6f}"
    )

    return jsonify({
        'network_id': network_id,
        'status': 'completed',
        'epochs': epochs,
        'initial_cost': initial_cost,
        'final_cost': final_cost
    }), 200


# ============================================================================
# SERVER STARTUP
# ============================================================================

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8000))
    debug = os.environ.get('FLASK_DEBUG', '0') == '1'

    logger.info(f"Starting server at http://localhost:{port}/")

    try:
        app.run(host='0.0.0.0', port=port, debug=debug, use_reloader=False)
    except OSError as e:
        if "Address already in use" in str(e):
            logger.error(f"Port {port} is already in use.")
            sys.exit(1)
        else:
            raise
