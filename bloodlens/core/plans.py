"""Subscription plans and their limits"""

from typing import Dict, Any, Optional

from bloodlens.core.config import Settings


def build_plans(settings: Settings) -> Dict[str, Dict[str, Any]]:
    """Subscription plans for this deployment. Amounts are in paise, as Razorpay expects."""
    return {
        'free': {
            'name': 'Free',
            'amount': 0,
            'currency': 'INR',
            'period': 'monthly',
            'analyses_limit': settings.FREE_TIER_ANALYSES_LIMIT,
            'razorpay_plan_id': None,
            'features': [
                'report_analysis',
                'follow_up_chat',
            ],
            'description': 'One free blood report analysis'
        },
        'pro': {
            'name': 'Pro Health Plan',
            'amount': 34900,
            'currency': 'INR',
            'period': 'monthly',
            'analyses_limit': -1,  # unlimited
            'razorpay_plan_id': settings.RAZORPAY_PRO_PLAN_ID or None,
            'features': [
                'report_analysis',
                'follow_up_chat',
                'report_history',
                'share_links',
            ],
            'description': 'Unlimited AI reports'
        },
        'family': {
            'name': 'Family Health Plan',
            'amount': 84900,
            'currency': 'INR',
            'period': 'monthly',
            'analyses_limit': -1,
            'razorpay_plan_id': settings.RAZORPAY_FAMILY_PLAN_ID or None,
            'features': [
                'report_analysis',
                'follow_up_chat',
                'report_history',
                'share_links',
                'five_members',
            ],
            'description': 'Unlimited AI reports for 5 members'
        }
    }


def get_plan(plans: Dict[str, Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
    """
    Look up a plan by its short name (free, pro, family)

    Args:
        plans: catalogue from build_plans
        name: plan name, case-insensitive

    Returns:
        Plan dict or None when unknown
    """
    return plans.get((name or '').lower())


def public_plans(plans: Dict[str, Dict[str, Any]]) -> list:
    """Plans as exposed to the pricing page"""
    return [
        {
            'id': key,
            'name': plan['name'],
            'amount': plan['amount'],
            'currency': plan['currency'],
            'period': plan['period'],
            'analysesLimit': plan['analyses_limit'],
            'planId': plan['razorpay_plan_id'],
            'features': plan['features'],
            'description': plan['description'],
        }
        for key, plan in plans.items()
    ]
