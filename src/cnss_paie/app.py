import logging
from datetime import date
from pathlib import Path

from flask import Flask, current_app, jsonify, request, send_file

from .config import settings
from .database.db import init_db, SessionLocal
from .database.repository import PayrollRepository
from .exceptions import (
    AssemblyError, BatchCalculationError, CalculationError, EncodingPreconditionError,
    InvalidTransitionError,
)
from .main import company_from_settings
from .models.employee import CompensationProfile
from .models.payroll import Period
from .models.workflow import ACCEPT, REJECT, SUBMIT, apply_event
from .processors import SalaryCalculator, prepare_declaration, write_bds, write_csv
from .sources.mock_profiles import MockProfileSource
from .sources.rate_provider import RateTableCache, RateTableProvider

logger = logging.getLogger(__name__)

STATUS_EVENTS = (SUBMIT, ACCEPT, REJECT)


def create_app(config=None) -> Flask:
    app = Flask(__name__)
    app.config['SECRET_KEY'] = settings.SECRET_KEY
    app.config['DEBUG'] = settings.DEBUG
    app.config['MAX_CONTENT_LENGTH'] = 16 * 1024 * 1024  # 16MB max request size
    app.config['RATE_PROVIDER'] = RateTableProvider(
        cache=RateTableCache(settings.RATE_TABLE_CACHE_TTL, settings.RATE_TABLE_CACHE_SIZE)
    )
    app.config['PROFILE_SOURCE'] = MockProfileSource()
    app.config['PAYROLL_WORKERS'] = settings.PAYROLL_WORKERS
    if config:
        app.config.update(config)

    init_db()

    # ========================================================================
    # Payroll
    # ========================================================================

    @app.route('/api/payroll/calculate', methods=['POST'])
    def calculate_payroll():
        """Calculate one employee's payslip for a period"""
        data = request.get_json(silent=True) or {}
        try:
            period = _period_from(data)
            profile = CompensationProfile.from_dict(data.get('profile') or {})
            rates = current_app.config['RATE_PROVIDER'].for_period(period)
            calculation = SalaryCalculator(rates).calculate(profile, period)
        except CalculationError as e:
            return jsonify({
                'success': False,
                'message': str(e),
                'errors': e.errors
            }), 400

        if data.get('save'):
            db = SessionLocal()
            try:
                PayrollRepository(db).save_calculation(calculation)
            finally:
                db.close()

        return jsonify({
            'success': True,
            'calculation': calculation.to_dict()
        })

    # ========================================================================
    # CNSS declarations
    # ========================================================================

    @app.route('/api/cnss/declarations', methods=['POST'])
    def create_declaration():
        """Calculate, assemble and validate the declaration of a period"""
        data = request.get_json(silent=True) or {}
        try:
            period = _period_from(data)
            if data.get('profiles') is not None:
                profiles = [CompensationProfile.from_dict(item) for item in data['profiles']]
            else:
                profiles = current_app.config['PROFILE_SOURCE'].get_profiles(period)
            rates = current_app.config['RATE_PROVIDER'].for_period(period)
            prepared = prepare_declaration(
                company_from_settings(), period, profiles, rates,
                max_workers=current_app.config['PAYROLL_WORKERS'],
            )
        except BatchCalculationError as e:
            return jsonify({
                'success': False,
                'message': str(e),
                'errors': {employee_id: error.errors for employee_id, error in e.failures.items()}
            }), 400
        except CalculationError as e:
            return jsonify({
                'success': False,
                'message': str(e),
                'errors': e.errors
            }), 400
        except AssemblyError as e:
            return jsonify({
                'success': False,
                'message': str(e)
            }), 400

        declaration = prepared.declaration
        files = {'csv': str(write_csv(declaration))}
        if prepared.valid:
            files['bds'] = str(write_bds(declaration))

        db = SessionLocal()
        try:
            repo = PayrollRepository(db)
            for _, calculation in prepared.calculations:
                repo.save_calculation(calculation)
            record = repo.save_declaration(declaration, prepared.validation, files)
            declaration_id = record.id
        finally:
            db.close()

        return jsonify({
            'success': True,
            'message': f'Declaration {period} is {declaration.status.value}',
            'id': declaration_id,
            'declaration': declaration.to_dict(),
            'validation': prepared.validation.to_dict()
        }), 201

    @app.route('/api/cnss/declarations')
    def list_declarations():
        """Get stored declarations"""
        year = request.args.get('year', type=int)
        month = request.args.get('month', type=int)

        db = SessionLocal()
        try:
            records = PayrollRepository(db).list_declarations(year, month)
            result = [{
                'id': record.id,
                'affiliation_number': record.affiliation_number,
                'year': record.year,
                'month': record.month,
                'status': record.status,
                'headcount': record.headcount,
                'total_gross': f"{record.total_gross:.2f}",
                'grand_total': f"{record.grand_total:.2f}",
                'validated_on': record.validated_on.isoformat() if record.validated_on else None,
                'created_at': record.created_at.strftime('%Y-%m-%d %H:%M:%S') if record.created_at else None
            } for record in records]
        finally:
            db.close()

        return jsonify(result)

    @app.route('/api/cnss/declarations/<int:declaration_id>/bds')
    def download_bds(declaration_id):
        """Download the BDS file of a validated declaration"""
        declaration = _load(declaration_id)
        if declaration is None:
            return jsonify({'success': False, 'message': 'Declaration not found'}), 404
        try:
            filepath = write_bds(declaration)
        except EncodingPreconditionError as e:
            return jsonify({'success': False, 'message': str(e)}), 409
        return send_file(Path(filepath).resolve(), as_attachment=True, mimetype='text/plain')

    @app.route('/api/cnss/declarations/<int:declaration_id>/csv')
    def download_csv(declaration_id):
        """Download the CSV export of a declaration"""
        declaration = _load(declaration_id)
        if declaration is None:
            return jsonify({'success': False, 'message': 'Declaration not found'}), 404
        filepath = write_csv(declaration)
        return send_file(Path(filepath).resolve(), as_attachment=True, mimetype='text/csv')

    @app.route('/api/cnss/declarations/<int:declaration_id>/status', methods=['POST'])
    def change_status(declaration_id):
        """Submit, accept or reject a declaration"""
        data = request.get_json(silent=True) or {}
        event = data.get('event')
        if event not in STATUS_EVENTS:
            return jsonify({
                'success': False,
                'message': f"event must be one of {', '.join(STATUS_EVENTS)}"
            }), 400

        db = SessionLocal()
        try:
            repo = PayrollRepository(db)
            record = repo.get_declaration(declaration_id)
            if record is None:
                return jsonify({'success': False, 'message': 'Declaration not found'}), 404
            declaration = repo.load_declaration(declaration_id)
            try:
                declaration = apply_event(declaration, event)
            except InvalidTransitionError as e:
                return jsonify({'success': False, 'message': str(e)}), 409

            repo.update_declaration(declaration_id, declaration)
            repo.record_submission(
                declaration_id,
                status=declaration.status.value,
                reference_number=data.get('reference'),
                response_data={
                    'event': event,
                    'message': data.get('message', ''),
                    'date': date.today().isoformat()
                }
            )
        finally:
            db.close()

        return jsonify({
            'success': True,
            'message': f'Declaration {declaration_id} is {declaration.status.value}',
            'declaration': declaration.to_dict()
        })

    return app


def _period_from(data) -> Period:
    try:
        return Period(int(data.get('year')), int(data.get('month')))
    except (TypeError, ValueError):
        raise CalculationError('period', 'year and month must be integers')


def _load(declaration_id):
    db = SessionLocal()
    try:
        return PayrollRepository(db).load_declaration(declaration_id)
    finally:
        db.close()
