# -*- coding: utf-8 -*-
"""
Flask API Server - #p instrumentation service
"""

from flask import Flask, request, jsonify
from flask_cors import CORS
import traceback

from config import HashpConfig
from marker_preprocessor import MarkerSyntaxError
from rewriter import rewrite_source, validate_output
from source_fetcher import SourceFetchError, SourceFetcher

app = Flask(__name__)
CORS(app, resources={
    r"/api/*": {"origins": "*"},
    r"/health": {"origins": "*"}
})

CONFIG = HashpConfig.from_env()

STATS = {
    'requests': 0,
    'instrumented_points': 0,
    'errors': 0,
}


# ==================== ENDPOINTS ====================

@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'online',
        'message': '#p instrumentation API',
        'marker': CONFIG.marker,
        'log_function': CONFIG.log_function,
    }), 200


@app.route('/api/instrument', methods=['POST'])
def instrument():
    """Instrument posted source, or source fetched from `source_url`"""
    STATS['requests'] += 1
    try:
        data = request.get_json(silent=True)

        if not data or ('code' not in data and 'source_url' not in data):
            return jsonify({'error': 'No code provided'}), 400

        print("\n" + "=" * 80)
        print("INSTRUMENTING SOURCE")
        print("=" * 80)

        if data.get('source_url'):
            print(f"\n[0/2] Fetching {data['source_url']}...")
            code = SourceFetcher(CONFIG).fetch(data['source_url'])
            print("✓ Source fetched")
        else:
            code = data['code']

        if not isinstance(code, str) or not code.strip():
            return jsonify({'error': 'Empty code'}), 400

        print("\n[1/2] Rewriting markers...")
        result = rewrite_source(code, CONFIG)
        report = result.report
        print(f"✓ {len(report.points)} point(s) instrumented from {report.markers_found} marker(s)")
        for degraded in report.degraded:
            print(f"  - rename only: {degraded.name} (line {degraded.line})")

        print("\n[2/2] Validating output...")
        validation = validate_output(result.code, CONFIG)
        for check, passed in validation.items():
            status = "✓" if passed else "✗"
            print(f"  {status} {check}")
        print("=" * 80 + "\n")

        STATS['instrumented_points'] += len(report.points)

        return jsonify({
            'success': True,
            'code': result.code,
            'report': report.to_dict(),
            'validation': validation,
            'lines': len(result.code.split('\n')),
        }), 200

    except MarkerSyntaxError as e:
        STATS['errors'] += 1
        print(f"\n✗ Marker error: {e}")
        return jsonify({
            'error': str(e),
            'type': 'marker_syntax_error',
            'line': e.lineno,
            'column': e.offset,
        }), 422

    except SourceFetchError as e:
        STATS['errors'] += 1
        print(f"\n✗ Fetch error: {e}")
        return jsonify({'error': str(e), 'type': 'fetch_error'}), 502

    except Exception as e:
        STATS['errors'] += 1
        error_msg = f"Instrumentation failed: {str(e)}"
        print(f"\n⌧ ERROR: {error_msg}")
        print(traceback.format_exc())
        return jsonify({
            'error': error_msg,
            'type': 'instrumentation_error'
        }), 500


@app.route('/api/stats', methods=['GET'])
def get_stats():
    """Get system statistics"""
    return jsonify({
        'requests': STATS['requests'],
        'instrumented_points': STATS['instrumented_points'],
        'errors': STATS['errors'],
        'marker': CONFIG.marker,
        'debug_prefix': CONFIG.debug_prefix,
        'github_token_configured': bool(CONFIG.github_token)
    }), 200


if __name__ == '__main__':
    print("\n" + "=" * 80)
    print(" " * 20 + "#p INSTRUMENTATION API")
    print("=" * 80)
    print(f"\n🚀 Server starting on http://localhost:{CONFIG.port}")
    print("\n📍 Endpoints:")
    print("   GET  /health           - Health check")
    print("   POST /api/instrument   - Rewrite #p markers")
    print("   GET  /api/stats        - System stats")
    print("=" * 80 + "\n")

    app.run(host=CONFIG.host, port=CONFIG.port, debug=CONFIG.debug, threaded=True)
