# -*- coding: utf-8 -*-
"""Derived health records (meals, medicines, body stats, lab tests)."""
