"""
KYC Onboarding Wizard - Web API
JSON API driving one onboarding wizard per browser session
"""

import asyncio
import logging
import threading
import uuid
from functools import wraps

from flask import Flask, request, jsonify, session, g
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from . import config
from .models import RawFile
from .services import OnboardingWizard, get_descriptor, get_investor_options, upload_slots
from .services.workflow import LAST_STEP

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)
CORS(app, origins=['http://localhost:*'])

# Configuration
app.config['SECRET_KEY'] = config.SECRET_KEY
app.config['SESSION_COOKIE_SECURE'] = config.FLASK_ENV == 'production'
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
app.config['WIZARD_FACTORY'] = OnboardingWizard

# Form field names sent by the client, mapped to draft attributes
PERSONAL_FORM_FIELDS = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'dateOfBirth': 'date_of_birth',
    'nationality': 'nationality',
    'phoneNumber': 'phone_number'
}

ADDRESS_FORM_FIELDS = {
    'street': 'street',
    'city': 'city',
    'state': 'state',
    'postalCode': 'postal_code',
    'country': 'country'
}

ACCREDITATION_FORM_FIELDS = {
    'claimed': 'claimed',
    'type': 'type',
    'annualIncome': 'annual_income',
    'netWorth': 'net_worth',
    'professionalCertification': 'professional_certification',
    'entityType': 'entity_type'
}

# In-memory wizards, keyed by session - nothing is persisted.
# Each wizard has its own lock so requests for one session run one at a time.
_wizards = {}
_wizard_locks = {}
_wizards_lock = threading.Lock()


def _map_fields(data, field_map):
    return {field_map[key]: value for key, value in data.items() if key in field_map}


def get_wizard():
    """Get the wizard and its lock for the current session, creating it on first use"""
    wizard_id = session.get('wizard_id')
    with _wizards_lock:
        if wizard_id and wizard_id in _wizards:
            return _wizards[wizard_id], _wizard_locks[wizard_id]

        wizard_id = uuid.uuid4().hex
        wizard = app.config['WIZARD_FACTORY']()
        wizard.start()
        _wizards[wizard_id] = wizard
        _wizard_locks[wizard_id] = threading.Lock()
        session['wizard_id'] = wizard_id
        logger.info(f"New wizard session {wizard_id}")
        return wizard, _wizard_locks[wizard_id]


def wizard_required(f):
    """Decorator loading the session's wizard into g.wizard"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.wizard, lock = get_wizard()
        with lock:
            return f(*args, **kwargs)
    return decorated_function


def wizard_state(status='success', code=200, **extra):
    body = {'status': status, 'wizard': g.wizard.to_dict()}
    body.update(extra)
    return jsonify(body), code


# ========== Security Headers ==========

@app.after_request
def add_security_headers(response):
    """Add security headers to all responses"""
    response.headers['X-Frame-Options'] = 'SAMEORIGIN'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    return response


# ========== Wizard API Routes ==========

@app.route('/api/kyc/wizard')
@wizard_required
def api_get_wizard():
    """Current wizard state"""
    return wizard_state()


@app.route('/api/kyc/wizard/personal', methods=['POST'])
@wizard_required
def api_update_personal():
    """Update personal information"""
    data = request.get_json(silent=True) or {}
    g.wizard.update_personal(**_map_fields(data, PERSONAL_FORM_FIELDS))
    return wizard_state()


@app.route('/api/kyc/wizard/address', methods=['POST'])
@wizard_required
def api_update_address():
    """Update address information"""
    data = request.get_json(silent=True) or {}
    g.wizard.update_address(**_map_fields(data, ADDRESS_FORM_FIELDS))
    return wizard_state()


@app.route('/api/kyc/wizard/accreditation', methods=['POST'])
@wizard_required
def api_update_accreditation():
    """Update the accredited investor claim"""
    data = request.get_json(silent=True) or {}
    try:
        g.wizard.set_accreditation(_map_fields(data, ACCREDITATION_FORM_FIELDS))
    except ValueError as e:
        return jsonify({'status': 'error', 'message': str(e)}), 400
    return wizard_state()


@app.route('/api/kyc/wizard/next', methods=['POST'])
@wizard_required
def api_next_step():
    """Validate the current step and advance"""
    if g.wizard.blocked:
        return wizard_state('error', 409, message=g.wizard.blocked_notice)
    if g.wizard.current_step == LAST_STEP:
        return wizard_state('error', 409, message='Already on the review step, submit to finish')
    if not g.wizard.next():
        return wizard_state('error', 400, message='Please fix the highlighted fields')
    return wizard_state()


@app.route('/api/kyc/wizard/back', methods=['POST'])
@wizard_required
def api_previous_step():
    """Go back one step"""
    g.wizard.back()
    return wizard_state()


@app.route('/api/kyc/wizard/submit', methods=['POST'])
@wizard_required
def api_submit():
    """Submit the KYC bundle to the verification backend"""
    result = asyncio.run(g.wizard.submit())
    if result['status'] == 'success':
        return wizard_state(message=result['message'], submission=result['submission'])

    if g.wizard.blocked:
        code = 409
    elif result.get('retryable'):
        code = 502
    else:
        code = 400
    return wizard_state('error', code, message=result['message'])


@app.route('/api/kyc/wizard/reset', methods=['POST'])
@wizard_required
def api_reset():
    """Discard the draft"""
    g.wizard.reset()
    return wizard_state()


# ========== Document API Routes ==========

@app.route('/api/kyc/documents/slots')
@wizard_required
def api_upload_slots():
    """Upload slots to show for the current draft"""
    slots = upload_slots(g.wizard.draft)
    return jsonify({
        'status': 'success',
        'slots': {group: [slot.to_dict() for slot in items] for group, items in slots.items()}
    })


@app.route('/api/kyc/documents/<document_type>', methods=['POST'])
@wizard_required
def api_upload_documents(document_type):
    """Upload a batch of files into one document slot"""
    try:
        get_descriptor(document_type)
    except KeyError:
        return jsonify({'status': 'error', 'message': f'Unknown document type: {document_type}'}), 404

    uploads = request.files.getlist('files')
    if not uploads:
        return jsonify({'status': 'error', 'message': 'No file provided'}), 400

    raw_files = [
        RawFile(filename=f.filename or '', content=f.read(), mime_type=f.mimetype or '')
        for f in uploads
    ]
    result = asyncio.run(g.wizard.upload(raw_files, document_type))

    if result.ignored:
        return wizard_state('error', 409, message='Files are still being processed for this slot',
                            intake=result.to_dict())
    return wizard_state(intake=result.to_dict())


@app.route('/api/kyc/documents/<document_id>', methods=['DELETE'])
@wizard_required
def api_delete_document(document_id):
    """Remove an uploaded document"""
    if not g.wizard.remove_document(document_id):
        return jsonify({'status': 'error', 'message': 'Document not found'}), 404
    return wizard_state(message='Document removed')


@app.route('/api/kyc/options')
def api_options():
    """Select options for investor type, certification, entity type and country"""
    return jsonify({'status': 'success', **get_investor_options()})


# ========== Error Handlers ==========

@app.errorhandler(404)
def not_found(e):
    return jsonify({'status': 'error', 'message': 'Endpoint not found'}), 404


@app.errorhandler(Exception)
def handle_exception(e):
    """Catch-all exception handler for API endpoints"""
    if isinstance(e, HTTPException):
        return jsonify({'status': 'error', 'message': e.description}), e.code
    logger.error(f'Unhandled exception: {e}', exc_info=True)
    if request.path.startswith('/api/'):
        return jsonify({'status': 'error', 'message': str(e)}), 500
    raise e


# ========== Main ==========

if __name__ == '__main__':
    debug = config.FLASK_ENV == 'development'
    app.run(host='0.0.0.0', port=config.PORT, debug=debug)
