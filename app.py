import datetime
import logging

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider

from converters import (
    SpreadsheetConversionError,
    SpreadsheetConverter,
    detect_delimiter,
    looks_like_csv,
)

logger = logging.getLogger(__name__)


class SpreadsheetJSONProvider(DefaultJSONProvider):
    """Serialize dates as ISO 8601 instead of HTTP dates; keep column order."""

    sort_keys = False

    @staticmethod
    def default(o):
        if isinstance(o, (datetime.datetime, datetime.date, datetime.time)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


app = Flask(__name__)
app.json = SpreadsheetJSONProvider(app)

TRUE_VALUES = {'1', 'true', 'yes', 'on'}


def _flag(name):
    value = request.args.get(name)
    if value is None:
        return None
    return value.strip().lower() in TRUE_VALUES


def build_config_from_request():
    """Map query parameters onto conversion options."""
    config = {}

    sheets = request.args.get('sheets')
    if sheets:
        if sheets in ('first', 'all'):
            config['sheet_selection'] = sheets
        else:
            # Comma list of names; purely numeric entries are indices
            config['sheet_selection'] = [
                int(s) if s.isascii() and s.isdigit() else s
                for s in (part.strip() for part in sheets.split(','))
                if s
            ]

    header_row = request.args.get('header_row')
    if header_row is not None:
        config['header_row_index'] = None if header_row.lower() == 'none' else int(header_row)

    date_format = request.args.get('date_format')
    if date_format:
        config['date_format'] = date_format

    for param, option in (('nested', 'create_nested_objects'),
                          ('include_sheet_name', 'include_sheet_name'),
                          ('skip_empty_rows', 'skip_empty_rows'),
                          ('skip_empty_columns', 'skip_empty_columns')):
        flag = _flag(param)
        if flag is not None:
            config[option] = flag

    delimiter = request.args.get('delimiter')
    if delimiter:
        config['csv'] = {'delimiter': '\t' if delimiter == 'tab' else delimiter}

    return config


def _request_payload():
    upload = request.files.get('file')
    if upload is not None:
        return upload.read()
    if request.is_json:
        return (request.get_json(silent=True) or {}).get('content')
    return request.get_data(as_text=True)


@app.route('/api/convert', methods=['POST'])
def api_convert():
    """Convert an uploaded workbook/CSV (or CSV text in the body) to JSON."""
    try:
        converter = SpreadsheetConverter(build_config_from_request())
    except ValueError as exc:
        return jsonify({'error': str(exc), 'type': 'ValueError'}), 400

    try:
        result = converter.convert_sync(_request_payload())
    except SpreadsheetConversionError as exc:
        logger.info("Conversion rejected: %s", exc.message)
        return jsonify(exc.to_dict()), 400

    return jsonify(result.to_dict())


@app.route('/api/detect-delimiter', methods=['POST'])
def api_detect_delimiter():
    text = request.get_data(as_text=True)
    return jsonify({
        'delimiter': detect_delimiter(text),
        'looks_like_csv': looks_like_csv(text),
    })


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True, port=5000)
