from flask import Blueprint, request, jsonify
from .. import db
from ..models import Category
from ..helpers.utils import require_auth, require_admin

categories_bp = Blueprint('categories', __name__)


@categories_bp.route('', methods=['GET'])
@require_auth
def get_categories():
    categories = Category.query.order_by(Category.name.asc()).all()
    return jsonify({
        'message': 'Categories retrieved successfully',
        'data': [c.to_dict() for c in categories]
    })


@categories_bp.route('', methods=['POST'])
@require_auth
@require_admin
def create_category():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'message': 'Category name is required'}), 400

    category = Category(name=name, description=data.get(
        'description'), created_by=request.auth_user_id)
    db.session.add(category)
    db.session.commit()

    return jsonify({'message': 'Category created', 'data': category.to_dict()}), 201


@categories_bp.route('', methods=['PUT'])
@require_auth
@require_admin
def update_category():
    data = request.get_json(silent=True) or {}
    category_id = data.get('id')
    if not category_id:
        return jsonify({'message': 'Category id is required'}), 400

    category = db.session.get(Category, category_id)
    if category is None:
        return jsonify({'message': 'Category not found'}), 404

    if 'name' not in data and 'description' not in data:
        return jsonify({'message': 'No fields to update'}), 400
    if 'name' in data:
        category.name = data['name']
    if 'description' in data:
        category.description = data['description']
    db.session.commit()

    return jsonify({'message': 'Category updated', 'data': category.to_dict()})


@categories_bp.route('', methods=['DELETE'])
@require_auth
@require_admin
def delete_category():
    data = request.get_json(silent=True) or {}
    category_id = data.get('id')
    if not category_id:
        return jsonify({'message': 'Category id is required'}), 400

    Category.query.filter_by(id=category_id).delete()
    db.session.commit()

    return jsonify({'message': 'Category deleted', 'success': True})
