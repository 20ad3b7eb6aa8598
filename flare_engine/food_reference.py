"""
Static food reference tables: individual foods, compound dishes and
per-category micronutrient estimates.

Values are per reference serving (see each entry's "serving") and follow the
units documented on MicronutrientData. Compound dishes list their
ingredients as servings of individual foods, so a dish's nutrients are the
sum of its ingredients.
"""
import re
from typing import Dict, List, Optional, Tuple
import logging

from .food_matching import normalize_food_text
from .schemas import MicronutrientData

logger = logging.getLogger(__name__)


# ============================================================================
# NUTRIENT KEY MAPPING (sparse table keys -> MicronutrientData fields)
# ============================================================================

VITAMIN_FIELDS = {
    "A": "vitamin_a",
    "B1": "vitamin_b1",
    "B2": "vitamin_b2",
    "B3": "vitamin_b3",
    "B5": "vitamin_b5",
    "B6": "vitamin_b6",
    "B7": "vitamin_b7",
    "B9": "vitamin_b9",
    "B12": "vitamin_b12",
    "C": "vitamin_c",
    "D": "vitamin_d",
    "E": "vitamin_e",
    "K": "vitamin_k",
}

MINERAL_FIELDS = {
    "Calcium": "calcium",
    "Iron": "iron",
    "Magnesium": "magnesium",
    "Phosphorus": "phosphorus",
    "Potassium": "potassium",
    "Sodium": "sodium",
    "Zinc": "zinc",
    "Copper": "copper",
    "Manganese": "manganese",
    "Selenium": "selenium",
    "Iodine": "iodine",
    "Chromium": "chromium",
    "Molybdenum": "molybdenum",
    "Boron": "boron",
    "Silicon": "silicon",
    "Vanadium": "vanadium",
}

IBD_NUTRIENT_FIELDS = {
    "Omega-3": "omega3",
    "Glutamine": "glutamine",
    "Probiotics": "probiotics",
    "Prebiotics": "prebiotics",
}

MACRO_FIELDS = ("calories", "protein", "carbs", "fiber", "fat")


# ============================================================================
# INDIVIDUAL FOODS (per reference serving)
# ============================================================================

INDIVIDUAL_FOODS = {
    # ===== GRAINS =====
    "White Rice": {
        "category": "grain", "serving": "1 cup cooked", "aliases": ["rice", "steamed rice"],
        "calories": 205, "protein": 4.3, "carbs": 44.5, "fiber": 0.6, "fat": 0.4,
        "vitamins": {"B1": 0.26, "B3": 2.3, "B6": 0.15, "B9": 92},
        "minerals": {"Iron": 1.9, "Magnesium": 19, "Phosphorus": 68, "Potassium": 55, "Zinc": 0.8,
                     "Copper": 0.1, "Manganese": 0.7, "Selenium": 11.8},
        "fodmap": "low", "allergens": [],
    },
    "Brown Rice": {
        "category": "grain", "serving": "1 cup cooked", "aliases": [],
        "calories": 216, "protein": 5.0, "carbs": 44.8, "fiber": 3.5, "fat": 1.8,
        "vitamins": {"B1": 0.19, "B3": 3.0, "B6": 0.28, "B9": 8},
        "minerals": {"Iron": 0.8, "Magnesium": 84, "Phosphorus": 162, "Potassium": 84, "Zinc": 1.2,
                     "Copper": 0.2, "Manganese": 1.8, "Selenium": 19.1},
        "fodmap": "low", "allergens": [],
    },
    "Oats": {
        "category": "grain", "serving": "1 cup cooked", "aliases": ["oatmeal", "porridge"],
        "calories": 166, "protein": 5.9, "carbs": 28.1, "fiber": 4.0, "fat": 3.6,
        "vitamins": {"B1": 0.18, "B5": 0.5, "B9": 14},
        "minerals": {"Iron": 2.1, "Magnesium": 63, "Phosphorus": 180, "Potassium": 164, "Zinc": 2.3,
                     "Copper": 0.2, "Manganese": 1.4, "Selenium": 12.6},
        "ibd": {"Prebiotics": 2.0},
        "fodmap": "low", "allergens": [],
    },
    "White Bread": {
        "category": "grain", "serving": "2 slices", "aliases": ["bread", "toast"],
        "calories": 160, "protein": 5.4, "carbs": 30.0, "fiber": 1.6, "fat": 2.0,
        "vitamins": {"B1": 0.28, "B2": 0.18, "B3": 2.6, "B9": 86},
        "minerals": {"Calcium": 80, "Iron": 1.8, "Sodium": 290, "Manganese": 0.3, "Selenium": 14},
        "fodmap": "moderate", "allergens": ["gluten"],
    },
    "Sourdough Bread": {
        "category": "grain", "serving": "2 slices", "aliases": ["sourdough"],
        "calories": 185, "protein": 7.5, "carbs": 36.0, "fiber": 1.5, "fat": 1.2,
        "vitamins": {"B1": 0.3, "B9": 70},
        "minerals": {"Iron": 2.2, "Sodium": 410, "Selenium": 17},
        "fodmap": "low", "allergens": ["gluten"],
    },
    "Pasta": {
        "category": "grain", "serving": "1 cup cooked", "aliases": ["spaghetti", "noodles", "penne", "macaroni"],
        "calories": 220, "protein": 8.1, "carbs": 43.0, "fiber": 2.5, "fat": 1.3,
        "vitamins": {"B1": 0.38, "B3": 2.4, "B9": 102},
        "minerals": {"Iron": 1.8, "Magnesium": 25, "Phosphorus": 81, "Manganese": 0.5, "Selenium": 37},
        "fodmap": "moderate", "allergens": ["gluten"],
    },
    "Quinoa": {
        "category": "grain", "serving": "1 cup cooked", "aliases": [],
        "calories": 222, "protein": 8.1, "carbs": 39.4, "fiber": 5.2, "fat": 3.6,
        "vitamins": {"B1": 0.2, "B2": 0.2, "B6": 0.23, "B9": 78, "E": 1.2},
        "minerals": {"Iron": 2.8, "Magnesium": 118, "Phosphorus": 281, "Potassium": 318, "Zinc": 2.0,
                     "Copper": 0.4, "Manganese": 1.2},
        "fodmap": "low", "allergens": [],
    },
    "Potato": {
        "category": "vegetable", "serving": "1 medium baked", "aliases": ["potatoes", "mashed potato"],
        "calories": 161, "protein": 4.3, "carbs": 36.6, "fiber": 3.8, "fat": 0.2,
        "vitamins": {"B3": 2.4, "B6": 0.54, "B9": 48, "C": 17},
        "minerals": {"Iron": 1.9, "Magnesium": 48, "Phosphorus": 121, "Potassium": 926},
        "fodmap": "low", "allergens": [],
    },
    "Sweet Potato": {
        "category": "vegetable", "serving": "1 medium baked", "aliases": ["yam"],
        "calories": 103, "protein": 2.3, "carbs": 23.6, "fiber": 3.8, "fat": 0.2,
        "vitamins": {"A": 1096, "B6": 0.29, "C": 22},
        "minerals": {"Magnesium": 31, "Potassium": 542, "Manganese": 0.6},
        "fodmap": "moderate", "allergens": [],
    },

    # ===== FRUIT =====
    "Banana": {
        "category": "fruit", "serving": "1 medium", "aliases": [],
        "calories": 105, "protein": 1.3, "carbs": 27.0, "fiber": 3.1, "fat": 0.4,
        "vitamins": {"B6": 0.43, "B9": 24, "C": 10.3},
        "minerals": {"Magnesium": 32, "Potassium": 422, "Manganese": 0.3},
        "ibd": {"Prebiotics": 0.5},
        "fodmap": "low", "allergens": [],
    },
    "Apple": {
        "category": "fruit", "serving": "1 medium", "aliases": [],
        "calories": 95, "protein": 0.5, "carbs": 25.0, "fiber": 4.4, "fat": 0.3,
        "vitamins": {"C": 8.4, "K": 4.0},
        "minerals": {"Potassium": 195, "Boron": 0.4},
        "ibd": {"Prebiotics": 1.0},
        "fodmap": "high", "allergens": [],
    },
    "Blueberries": {
        "category": "fruit", "serving": "1 cup", "aliases": ["blueberry"],
        "calories": 84, "protein": 1.1, "carbs": 21.4, "fiber": 3.6, "fat": 0.5,
        "vitamins": {"C": 14.4, "E": 0.8, "K": 28.6},
        "minerals": {"Potassium": 114, "Manganese": 0.5},
        "fodmap": "low", "allergens": [],
    },
    "Orange": {
        "category": "fruit", "serving": "1 medium", "aliases": [],
        "calories": 62, "protein": 1.2, "carbs": 15.4, "fiber": 3.1, "fat": 0.2,
        "vitamins": {"B1": 0.11, "B9": 40, "C": 70},
        "minerals": {"Calcium": 52, "Potassium": 237},
        "fodmap": "low", "allergens": [],
    },
    "Avocado": {
        "category": "fruit", "serving": "1/2 fruit", "aliases": [],
        "calories": 160, "protein": 2.0, "carbs": 8.5, "fiber": 6.7, "fat": 14.7,
        "vitamins": {"B5": 1.4, "B6": 0.26, "B9": 81, "C": 10, "E": 2.1, "K": 21},
        "minerals": {"Magnesium": 29, "Potassium": 485},
        "fodmap": "moderate", "allergens": [],
    },

    # ===== VEGETABLES =====
    "Carrot": {
        "category": "vegetable", "serving": "1 cup cooked", "aliases": [],
        "calories": 54, "protein": 1.2, "carbs": 12.8, "fiber": 4.7, "fat": 0.3,
        "vitamins": {"A": 1329, "B6": 0.2, "K": 21},
        "minerals": {"Potassium": 367},
        "fodmap": "low", "allergens": [],
    },
    "Broccoli": {
        "category": "vegetable", "serving": "1 cup cooked", "aliases": [],
        "calories": 55, "protein": 3.7, "carbs": 11.2, "fiber": 5.1, "fat": 0.6,
        "vitamins": {"A": 120, "B9": 168, "C": 101, "K": 220},
        "minerals": {"Calcium": 62, "Iron": 1.0, "Potassium": 457},
        "fodmap": "moderate", "allergens": [],
    },
    "Spinach": {
        "category": "vegetable", "serving": "1 cup cooked", "aliases": [],
        "calories": 41, "protein": 5.3, "carbs": 6.8, "fiber": 4.3, "fat": 0.5,
        "vitamins": {"A": 943, "B2": 0.42, "B9": 263, "C": 17.6, "E": 3.7, "K": 888},
        "minerals": {"Calcium": 245, "Iron": 6.4, "Magnesium": 157, "Potassium": 839, "Manganese": 1.7},
        "fodmap": "low", "allergens": [],
    },
    "Zucchini": {
        "category": "vegetable", "serving": "1 cup cooked", "aliases": ["courgette"],
        "calories": 27, "protein": 2.1, "carbs": 4.8, "fiber": 1.8, "fat": 0.6,
        "vitamins": {"A": 40, "B6": 0.4, "C": 23},
        "minerals": {"Potassium": 485, "Manganese": 0.3},
        "fodmap": "low", "allergens": [],
    },
    "Tomato": {
        "category": "vegetable", "serving": "1 medium", "aliases": [],
        "calories": 22, "protein": 1.1, "carbs": 4.8, "fiber": 1.5, "fat": 0.2,
        "vitamins": {"A": 52, "C": 17, "K": 9.7},
        "minerals": {"Potassium": 292},
        "fodmap": "low", "allergens": [],
    },
    "Lettuce": {
        "category": "vegetable", "serving": "1 cup shredded", "aliases": ["salad greens"],
        "calories": 5, "protein": 0.5, "carbs": 1.0, "fiber": 0.5, "fat": 0.1,
        "vitamins": {"A": 205, "B9": 38, "K": 48},
        "minerals": {"Potassium": 116},
        "fodmap": "low", "allergens": [],
    },
    "Bell Pepper": {
        "category": "vegetable", "serving": "1 cup chopped", "aliases": ["red pepper", "peppers"],
        "calories": 30, "protein": 1.0, "carbs": 7.0, "fiber": 2.5, "fat": 0.3,
        "vitamins": {"A": 157, "B6": 0.4, "C": 190},
        "minerals": {"Potassium": 314},
        "fodmap": "low", "allergens": [],
    },
    "Onion": {
        "category": "vegetable", "serving": "1/2 cup chopped", "aliases": [],
        "calories": 32, "protein": 0.9, "carbs": 7.5, "fiber": 1.4, "fat": 0.1,
        "vitamins": {"B6": 0.1, "B9": 15, "C": 5.9},
        "minerals": {"Potassium": 117},
        "ibd": {"Prebiotics": 1.0},
        "fodmap": "high", "allergens": [],
    },
    "Garlic": {
        "category": "vegetable", "serving": "1 clove", "aliases": [],
        "calories": 4, "protein": 0.2, "carbs": 1.0, "fiber": 0.1, "fat": 0.0,
        "vitamins": {"C": 0.9},
        "minerals": {"Manganese": 0.05},
        "ibd": {"Prebiotics": 0.2},
        "fodmap": "high", "allergens": [],
    },
    "Sauerkraut": {
        "category": "vegetable", "serving": "1/2 cup", "aliases": [],
        "calories": 14, "protein": 0.6, "carbs": 3.0, "fiber": 2.0, "fat": 0.1,
        "vitamins": {"C": 10, "K": 9.5},
        "minerals": {"Iron": 1.0, "Sodium": 470},
        "ibd": {"Probiotics": 1.0},
        "fodmap": "low", "allergens": [],
    },

    # ===== PROTEIN =====
    "Chicken Breast": {
        "category": "protein", "serving": "3 oz cooked", "aliases": ["chicken", "grilled chicken"],
        "calories": 140, "protein": 26.0, "carbs": 0.0, "fiber": 0.0, "fat": 3.0,
        "vitamins": {"B3": 11.4, "B5": 0.8, "B6": 0.5, "B12": 0.3},
        "minerals": {"Phosphorus": 196, "Potassium": 220, "Zinc": 0.9, "Selenium": 22},
        "ibd": {"Glutamine": 0.8},
        "fodmap": "low", "allergens": [],
    },
    "Turkey": {
        "category": "protein", "serving": "3 oz cooked", "aliases": ["turkey breast"],
        "calories": 135, "protein": 25.0, "carbs": 0.0, "fiber": 0.0, "fat": 3.0,
        "vitamins": {"B3": 9.5, "B6": 0.7, "B12": 0.4},
        "minerals": {"Phosphorus": 190, "Zinc": 1.5, "Selenium": 26},
        "ibd": {"Glutamine": 0.8},
        "fodmap": "low", "allergens": [],
    },
    "Salmon": {
        "category": "protein", "serving": "3 oz cooked", "aliases": [],
        "calories": 175, "protein": 19.0, "carbs": 0.0, "fiber": 0.0, "fat": 10.5,
        "vitamins": {"B3": 6.8, "B6": 0.5, "B12": 2.6, "D": 11.1},
        "minerals": {"Phosphorus": 218, "Potassium": 326, "Selenium": 31},
        "ibd": {"Omega-3": 1.8},
        "fodmap": "low", "allergens": ["fish"],
    },
    "Tuna": {
        "category": "protein", "serving": "3 oz canned", "aliases": [],
        "calories": 99, "protein": 22.0, "carbs": 0.0, "fiber": 0.0, "fat": 0.7,
        "vitamins": {"B3": 11.3, "B12": 2.5, "D": 1.2},
        "minerals": {"Phosphorus": 139, "Selenium": 68},
        "ibd": {"Omega-3": 0.2},
        "fodmap": "low", "allergens": ["fish"],
    },
    "Sardines": {
        "category": "protein", "serving": "3 oz canned", "aliases": [],
        "calories": 177, "protein": 21.0, "carbs": 0.0, "fiber": 0.0, "fat": 9.7,
        "vitamins": {"B3": 4.5, "B12": 7.6, "D": 4.1},
        "minerals": {"Calcium": 325, "Iron": 2.5, "Phosphorus": 417, "Selenium": 45},
        "ibd": {"Omega-3": 1.3},
        "fodmap": "low", "allergens": ["fish"],
    },
    "Cod": {
        "category": "protein", "serving": "3 oz cooked", "aliases": ["white fish"],
        "calories": 90, "protein": 19.0, "carbs": 0.0, "fiber": 0.0, "fat": 0.7,
        "vitamins": {"B3": 2.1, "B6": 0.24, "B12": 0.9},
        "minerals": {"Phosphorus": 117, "Selenium": 32, "Iodine": 99},
        "ibd": {"Omega-3": 0.15},
        "fodmap": "low", "allergens": ["fish"],
    },
    "Beef": {
        "category": "protein", "serving": "3 oz cooked", "aliases": ["steak", "ground beef"],
        "calories": 213, "protein": 22.0, "carbs": 0.0, "fiber": 0.0, "fat": 13.0,
        "vitamins": {"B3": 5.4, "B6": 0.4, "B12": 2.4},
        "minerals": {"Iron": 2.1, "Phosphorus": 180, "Zinc": 5.3, "Selenium": 18},
        "fodmap": "low", "allergens": [],
    },
    "Pork": {
        "category": "protein", "serving": "3 oz cooked", "aliases": ["pork chop"],
        "calories": 180, "protein": 22.0, "carbs": 0.0, "fiber": 0.0, "fat": 9.0,
        "vitamins": {"B1": 0.8, "B3": 7.5, "B6": 0.6, "B12": 0.6},
        "minerals": {"Phosphorus": 240, "Zinc": 2.4, "Selenium": 38},
        "fodmap": "low", "allergens": [],
    },
    "Bacon": {
        "category": "protein", "serving": "2 slices", "aliases": [],
        "calories": 86, "protein": 6.0, "carbs": 0.2, "fiber": 0.0, "fat": 6.7,
        "vitamins": {"B3": 1.8, "B12": 0.2},
        "minerals": {"Sodium": 370, "Selenium": 9.8},
        "fodmap": "low", "allergens": [],
    },
    "Egg": {
        "category": "protein", "serving": "1 large", "aliases": ["scrambled eggs", "omelette", "boiled egg"],
        "calories": 72, "protein": 6.3, "carbs": 0.4, "fiber": 0.0, "fat": 4.8,
        "vitamins": {"A": 80, "B2": 0.23, "B5": 0.7, "B7": 10, "B12": 0.45, "D": 1.1},
        "minerals": {"Phosphorus": 99, "Selenium": 15.4, "Iodine": 24},
        "fodmap": "low", "allergens": ["egg"],
    },
    "Tofu": {
        "category": "protein", "serving": "1/2 cup firm", "aliases": [],
        "calories": 94, "protein": 10.0, "carbs": 2.3, "fiber": 0.4, "fat": 6.0,
        "minerals": {"Calcium": 434, "Iron": 3.4, "Magnesium": 37, "Manganese": 0.7, "Selenium": 11},
        "fodmap": "low", "allergens": ["soy"],
    },
    "Lentils": {
        "category": "protein", "serving": "1 cup cooked", "aliases": ["lentil"],
        "calories": 230, "protein": 17.9, "carbs": 39.9, "fiber": 15.6, "fat": 0.8,
        "vitamins": {"B1": 0.33, "B6": 0.35, "B9": 358},
        "minerals": {"Iron": 6.6, "Magnesium": 71, "Phosphorus": 356, "Potassium": 731, "Zinc": 2.5,
                     "Copper": 0.5, "Manganese": 1.0, "Molybdenum": 148},
        "ibd": {"Prebiotics": 3.0},
        "fodmap": "high", "allergens": [],
    },
    "Chickpeas": {
        "category": "protein", "serving": "1 cup cooked", "aliases": ["chickpea", "garbanzo"],
        "calories": 269, "protein": 14.5, "carbs": 45.0, "fiber": 12.5, "fat": 4.2,
        "vitamins": {"B6": 0.23, "B9": 282},
        "minerals": {"Iron": 4.7, "Magnesium": 79, "Phosphorus": 276, "Zinc": 2.5, "Manganese": 1.7},
        "ibd": {"Prebiotics": 2.5},
        "fodmap": "high", "allergens": [],
    },
    "Bone Broth": {
        "category": "protein", "serving": "1 cup", "aliases": ["broth", "stock"],
        "calories": 40, "protein": 9.0, "carbs": 0.5, "fiber": 0.0, "fat": 0.5,
        "minerals": {"Calcium": 9, "Phosphorus": 60, "Potassium": 200, "Sodium": 400},
        "ibd": {"Glutamine": 2.0},
        "fodmap": "low", "allergens": [],
    },

    # ===== DAIRY =====
    "Milk": {
        "category": "dairy", "serving": "1 cup", "aliases": ["whole milk"],
        "calories": 149, "protein": 7.7, "carbs": 11.7, "fiber": 0.0, "fat": 7.9,
        "vitamins": {"A": 112, "B2": 0.41, "B12": 1.1, "D": 2.9},
        "minerals": {"Calcium": 276, "Phosphorus": 205, "Potassium": 322, "Iodine": 85},
        "fodmap": "high", "allergens": ["dairy"],
    },
    "Lactose-Free Milk": {
        "category": "dairy", "serving": "1 cup", "aliases": ["lactose free milk"],
        "calories": 149, "protein": 7.7, "carbs": 11.7, "fiber": 0.0, "fat": 7.9,
        "vitamins": {"A": 112, "B2": 0.41, "B12": 1.1, "D": 2.9},
        "minerals": {"Calcium": 276, "Phosphorus": 205, "Potassium": 322, "Iodine": 85},
        "fodmap": "low", "allergens": ["dairy"],
    },
    "Yogurt": {
        "category": "dairy", "serving": "1 cup plain", "aliases": ["yoghurt"],
        "calories": 149, "protein": 8.5, "carbs": 11.4, "fiber": 0.0, "fat": 8.0,
        "vitamins": {"B2": 0.35, "B12": 0.9},
        "minerals": {"Calcium": 296, "Phosphorus": 233, "Potassium": 380, "Zinc": 1.5, "Iodine": 75},
        "ibd": {"Probiotics": 1.0},
        "fodmap": "high", "allergens": ["dairy"],
    },
    "Greek Yogurt": {
        "category": "dairy", "serving": "170 g", "aliases": ["greek yoghurt"],
        "calories": 100, "protein": 17.0, "carbs": 6.0, "fiber": 0.0, "fat": 0.7,
        "vitamins": {"B12": 1.3},
        "minerals": {"Calcium": 187, "Phosphorus": 230, "Potassium": 240, "Selenium": 16},
        "ibd": {"Probiotics": 1.0},
        "fodmap": "moderate", "allergens": ["dairy"],
    },
    "Kefir": {
        "category": "dairy", "serving": "1 cup", "aliases": [],
        "calories": 104, "protein": 9.2, "carbs": 11.6, "fiber": 0.0, "fat": 2.5,
        "vitamins": {"A": 75, "B12": 0.7, "D": 2.5},
        "minerals": {"Calcium": 316, "Phosphorus": 250, "Potassium": 380},
        "ibd": {"Probiotics": 5.0},
        "fodmap": "low", "allergens": ["dairy"],
    },
    "Cheddar Cheese": {
        "category": "dairy", "serving": "1 oz", "aliases": ["cheese", "cheddar"],
        "calories": 115, "protein": 6.5, "carbs": 0.4, "fiber": 0.0, "fat": 9.5,
        "vitamins": {"A": 75, "B12": 0.3, "K": 3.6},
        "minerals": {"Calcium": 201, "Phosphorus": 143, "Sodium": 185, "Zinc": 1.0},
        "fodmap": "low", "allergens": ["dairy"],
    },
    "Vanilla Pudding": {
        "category": "dairy", "serving": "1/2 cup", "aliases": ["sweet pudding", "pudding", "custard"],
        "calories": 140, "protein": 3.8, "carbs": 23.0, "fiber": 0.0, "fat": 3.5,
        "vitamins": {"A": 55, "B2": 0.2, "B12": 0.5, "D": 1.4},
        "minerals": {"Calcium": 150, "Phosphorus": 120, "Potassium": 180, "Sodium": 150},
        "fodmap": "high", "allergens": ["dairy"],
    },

    # ===== NUTS, SEEDS, FATS, SWEETENERS, CONDIMENTS =====
    "Almonds": {
        "category": "other", "serving": "1 oz", "aliases": ["almond"],
        "calories": 164, "protein": 6.0, "carbs": 6.1, "fiber": 3.5, "fat": 14.2,
        "vitamins": {"B2": 0.3, "E": 7.3},
        "minerals": {"Calcium": 76, "Magnesium": 76, "Phosphorus": 136, "Copper": 0.3, "Manganese": 0.6},
        "fodmap": "moderate", "allergens": ["nuts"],
    },
    "Peanut Butter": {
        "category": "other", "serving": "2 tbsp", "aliases": [],
        "calories": 190, "protein": 7.0, "carbs": 7.0, "fiber": 1.6, "fat": 16.0,
        "vitamins": {"B3": 4.2, "B6": 0.17, "E": 2.9},
        "minerals": {"Magnesium": 49, "Phosphorus": 107, "Potassium": 208},
        "fodmap": "low", "allergens": ["nuts"],
    },
    "Pumpkin Seeds": {
        "category": "other", "serving": "1 oz", "aliases": ["pepitas"],
        "calories": 158, "protein": 8.5, "carbs": 3.0, "fiber": 1.7, "fat": 13.9,
        "minerals": {"Iron": 2.5, "Magnesium": 156, "Phosphorus": 333, "Zinc": 2.2, "Copper": 0.4,
                     "Manganese": 1.3},
        "fodmap": "low", "allergens": ["seeds"],
    },
    "Chia Seeds": {
        "category": "other", "serving": "1 oz", "aliases": ["chia"],
        "calories": 138, "protein": 4.7, "carbs": 12.0, "fiber": 9.8, "fat": 8.7,
        "minerals": {"Calcium": 179, "Magnesium": 95, "Phosphorus": 244, "Zinc": 1.3, "Manganese": 0.8},
        "ibd": {"Omega-3": 5.0, "Prebiotics": 3.0},
        "fodmap": "low", "allergens": ["seeds"],
    },
    "Olive Oil": {
        "category": "other", "serving": "1 tbsp", "aliases": [],
        "calories": 119, "protein": 0.0, "carbs": 0.0, "fiber": 0.0, "fat": 13.5,
        "vitamins": {"E": 1.9, "K": 8.1},
        "fodmap": "low", "allergens": [],
    },
    "Mayonnaise": {
        "category": "other", "serving": "1 tbsp", "aliases": ["mayo"],
        "calories": 94, "protein": 0.1, "carbs": 0.1, "fiber": 0.0, "fat": 10.3,
        "vitamins": {"E": 0.7, "K": 22},
        "minerals": {"Sodium": 88},
        "fodmap": "low", "allergens": ["egg"],
    },
    "Soy Sauce": {
        "category": "other", "serving": "1 tbsp", "aliases": [],
        "calories": 9, "protein": 1.3, "carbs": 0.8, "fiber": 0.1, "fat": 0.0,
        "minerals": {"Sodium": 880},
        "fodmap": "low", "allergens": ["soy", "gluten"],
    },
    "Sugar": {
        "category": "other", "serving": "1 tbsp", "aliases": [],
        "calories": 48, "protein": 0.0, "carbs": 12.6, "fiber": 0.0, "fat": 0.0,
        "fodmap": "low", "allergens": [],
    },
    "Honey": {
        "category": "other", "serving": "1 tbsp", "aliases": [],
        "calories": 64, "protein": 0.1, "carbs": 17.3, "fiber": 0.0, "fat": 0.0,
        "minerals": {"Potassium": 11},
        "fodmap": "high", "allergens": [],
    },
}


# ============================================================================
# COMPOUND DISHES (ingredient quantity = servings of the individual food)
# ============================================================================

COMPOUND_FOODS = {
    "White Rice with Sweet Pudding": {
        "category": "dessert", "cuisine": "international", "serving": "1 cup",
        "aliases": ["rice pudding"],
        "ingredients": [
            ("White Rice", 1.0, "1 cup cooked"),
            ("Vanilla Pudding", 1.0, "1/2 cup"),
            ("Sugar", 0.5, "1/2 tbsp"),
        ],
        "fodmap": "high",
    },
    "Grilled Chicken with White Rice": {
        "category": "main", "cuisine": "american", "serving": "1 plate",
        "aliases": ["chicken and rice"],
        "ingredients": [
            ("Chicken Breast", 1.0, "3 oz"),
            ("White Rice", 1.0, "1 cup cooked"),
            ("Olive Oil", 0.5, "1/2 tbsp"),
        ],
        "fodmap": "low",
    },
    "Chicken and Rice Soup": {
        "category": "soup", "cuisine": "american", "serving": "1 bowl",
        "aliases": ["chicken rice soup"],
        "ingredients": [
            ("Chicken Breast", 0.5, "1.5 oz"),
            ("White Rice", 0.5, "1/2 cup cooked"),
            ("Carrot", 0.25, "1/4 cup"),
            ("Onion", 0.25, "2 tbsp"),
            ("Bone Broth", 1.5, "1.5 cups"),
        ],
        "fodmap": "high",
    },
    "Salmon with Sweet Potato": {
        "category": "main", "cuisine": "american", "serving": "1 plate",
        "aliases": [],
        "ingredients": [
            ("Salmon", 1.0, "3 oz"),
            ("Sweet Potato", 1.0, "1 medium"),
            ("Olive Oil", 0.5, "1/2 tbsp"),
        ],
        "fodmap": "moderate",
    },
    "Scrambled Eggs on Toast": {
        "category": "breakfast", "cuisine": "british", "serving": "1 plate",
        "aliases": ["eggs on toast"],
        "ingredients": [
            ("Egg", 2.0, "2 large"),
            ("White Bread", 0.5, "1 slice"),
            ("Olive Oil", 0.25, "1 tsp"),
        ],
        "fodmap": "moderate",
    },
    "Oatmeal with Banana": {
        "category": "breakfast", "cuisine": "american", "serving": "1 bowl",
        "aliases": ["banana oatmeal", "banana porridge"],
        "ingredients": [
            ("Oats", 1.0, "1 cup cooked"),
            ("Banana", 0.5, "1/2 medium"),
            ("Lactose-Free Milk", 0.5, "1/2 cup"),
        ],
        "fodmap": "low",
    },
    "Turkey Sandwich": {
        "category": "main", "cuisine": "american", "serving": "1 sandwich",
        "aliases": [],
        "ingredients": [
            ("Turkey", 0.67, "2 oz"),
            ("White Bread", 1.0, "2 slices"),
            ("Lettuce", 0.25, "1/4 cup"),
            ("Tomato", 0.25, "2 slices"),
            ("Mayonnaise", 1.0, "1 tbsp"),
        ],
        "fodmap": "moderate",
    },
    "Spaghetti Bolognese": {
        "category": "main", "cuisine": "italian", "serving": "1 plate",
        "aliases": ["spaghetti bolognaise", "bolognese"],
        "ingredients": [
            ("Pasta", 1.5, "1.5 cups cooked"),
            ("Beef", 1.0, "3 oz"),
            ("Tomato", 1.0, "1 medium"),
            ("Onion", 0.25, "2 tbsp"),
            ("Garlic", 1.0, "1 clove"),
            ("Olive Oil", 0.5, "1/2 tbsp"),
        ],
        "fodmap": "high",
    },
    "Greek Yogurt Parfait": {
        "category": "breakfast", "cuisine": "american", "serving": "1 cup",
        "aliases": ["yogurt parfait"],
        "ingredients": [
            ("Greek Yogurt", 1.0, "170 g"),
            ("Blueberries", 0.5, "1/2 cup"),
            ("Chia Seeds", 0.5, "1/2 oz"),
            ("Honey", 0.5, "1/2 tbsp"),
        ],
        "fodmap": "high",
    },
    "Beef Stir Fry": {
        "category": "main", "cuisine": "chinese", "serving": "1 plate",
        "aliases": ["beef stir-fry"],
        "ingredients": [
            ("Beef", 1.0, "3 oz"),
            ("Bell Pepper", 1.0, "1 cup"),
            ("Broccoli", 0.5, "1/2 cup"),
            ("Soy Sauce", 1.0, "1 tbsp"),
            ("White Rice", 1.0, "1 cup cooked"),
        ],
        "fodmap": "moderate",
    },
    "Tuna Salad": {
        "category": "main", "cuisine": "american", "serving": "1 bowl",
        "aliases": [],
        "ingredients": [
            ("Tuna", 1.0, "3 oz"),
            ("Mayonnaise", 1.0, "1 tbsp"),
            ("Lettuce", 1.0, "1 cup"),
            ("Tomato", 0.5, "1/2 medium"),
        ],
        "fodmap": "low",
    },
    "Lentil Soup": {
        "category": "soup", "cuisine": "mediterranean", "serving": "1 bowl",
        "aliases": [],
        "ingredients": [
            ("Lentils", 1.0, "1 cup cooked"),
            ("Carrot", 0.5, "1/2 cup"),
            ("Onion", 0.5, "1/4 cup"),
            ("Bone Broth", 1.0, "1 cup"),
            ("Olive Oil", 0.5, "1/2 tbsp"),
        ],
        "fodmap": "high",
    },
    "Banana Smoothie": {
        "category": "drink", "cuisine": "american", "serving": "1 glass",
        "aliases": ["smoothie"],
        "ingredients": [
            ("Banana", 1.0, "1 medium"),
            ("Greek Yogurt", 0.5, "85 g"),
            ("Lactose-Free Milk", 1.0, "1 cup"),
            ("Blueberries", 0.5, "1/2 cup"),
        ],
        "fodmap": "low",
    },
    "Baked Cod with Potatoes": {
        "category": "main", "cuisine": "mediterranean", "serving": "1 plate",
        "aliases": ["cod and potatoes"],
        "ingredients": [
            ("Cod", 1.0, "3 oz"),
            ("Potato", 1.0, "1 medium"),
            ("Olive Oil", 0.5, "1/2 tbsp"),
        ],
        "fodmap": "low",
    },
    "Quinoa Salad": {
        "category": "main", "cuisine": "mediterranean", "serving": "1 bowl",
        "aliases": [],
        "ingredients": [
            ("Quinoa", 1.0, "1 cup cooked"),
            ("Bell Pepper", 0.5, "1/2 cup"),
            ("Spinach", 0.5, "1/2 cup"),
            ("Tomato", 0.5, "1/2 medium"),
            ("Olive Oil", 1.0, "1 tbsp"),
        ],
        "fodmap": "low",
    },
    "Bacon and Eggs": {
        "category": "breakfast", "cuisine": "british", "serving": "1 plate",
        "aliases": ["eggs and bacon"],
        "ingredients": [
            ("Bacon", 1.0, "2 slices"),
            ("Egg", 2.0, "2 large"),
        ],
        "fodmap": "low",
    },
}


# ============================================================================
# CATEGORY ESTIMATES (fallback when no table entry matches)
# ============================================================================

CATEGORY_KEYWORDS = {
    "fruit": ["fruit", "apple", "banana", "berry", "berries", "grape", "melon", "peach", "pear", "kiwi"],
    "vegetable": ["vegetable", "veggie", "carrot", "broccoli", "salad", "greens", "squash", "beet"],
    "protein": ["meat", "chicken", "beef", "fish", "pork", "lamb", "shrimp", "bean"],
    "grain": ["grain", "rice", "bread", "cereal", "cracker", "bagel", "tortilla", "muffin"],
    "dairy": ["dairy", "milk", "cheese", "yogurt", "cream"],
}

CATEGORY_ESTIMATES = {
    "fruit": {"vitamin_b9": 20, "vitamin_c": 50, "potassium": 200},
    "vegetable": {"vitamin_a": 100, "vitamin_b9": 40, "vitamin_c": 30, "potassium": 300},
    "protein": {"vitamin_b12": 1, "iron": 2, "zinc": 3},
    "grain": {"vitamin_b9": 30, "iron": 1, "magnesium": 50},
    "dairy": {"vitamin_b12": 1, "vitamin_d": 2, "calcium": 200},
    "other": {},
}

DEFAULT_CATEGORY = "other"


def _term_pattern(term: str) -> re.Pattern:
    # Whole words, tolerating a plural suffix
    return re.compile(r"\b" + re.escape(term) + r"(?:e?s)?\b")


class FoodReference:
    """
    Read-only lookup over the individual-food and compound-dish tables.

    Built once at process start and injected wherever foods are resolved.
    """

    def __init__(
        self,
        individual_foods: Optional[Dict[str, dict]] = None,
        compound_foods: Optional[Dict[str, dict]] = None,
    ):
        self.individual_foods = INDIVIDUAL_FOODS if individual_foods is None else individual_foods
        self.compound_foods = COMPOUND_FOODS if compound_foods is None else compound_foods
        self._individual_terms = self._build_terms(self.individual_foods)
        self._compound_terms = self._build_terms(self.compound_foods)
        self._individual_by_key = {normalize_food_text(name): name for name in self.individual_foods}

    @staticmethod
    def _build_terms(table: Dict[str, dict]) -> List[Tuple[str, str, re.Pattern]]:
        """(term, canonical name, pattern) for names and aliases, longest first."""
        terms = []
        for name, entry in table.items():
            for term in [name] + list(entry.get("aliases", [])):
                normalized = normalize_food_text(term)
                terms.append((normalized, name, _term_pattern(normalized)))
        terms.sort(key=lambda item: (-len(item[0]), item[0]))
        return terms

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_compound(self, text: str) -> Optional[str]:
        """Longest compound dish whose name or alias appears in the text."""
        normalized = normalize_food_text(text)
        for term, name, _ in self._compound_terms:
            if term in normalized:
                return name
        return None

    def find_compound_containing(self, text: str) -> Optional[str]:
        """Shortest compound dish whose name contains the whole text."""
        normalized = normalize_food_text(text)
        if not normalized:
            return None
        candidates = [
            (term, name) for term, name, _ in self._compound_terms
            if normalized in term
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda item: (len(item[0]), item[0]))[1]

    def find_individuals(self, text: str) -> List[str]:
        """
        Individual foods mentioned in the text, longest match first.

        Each matched span is consumed so "sweet potato" does not also
        count as "potato".
        """
        remaining = normalize_food_text(text)
        found = []
        for term, name, pattern in self._individual_terms:
            if pattern.search(remaining):
                if name not in found:
                    found.append(name)
                remaining = pattern.sub(" | ", remaining)
        return found

    def find_individual_containing(self, text: str) -> Optional[str]:
        """Shortest individual food whose name or alias contains the whole text."""
        normalized = normalize_food_text(text)
        if len(normalized) < 3:
            return None
        candidates = [
            (term, name) for term, name, _ in self._individual_terms
            if normalized in term
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda item: (len(item[0]), item[0]))[1]

    def categorize(self, text: str) -> str:
        """Broad food category by keyword, 'other' when nothing matches."""
        normalized = normalize_food_text(text)
        for category, keywords in CATEGORY_KEYWORDS.items():
            if any(keyword in normalized for keyword in keywords):
                return category
        return DEFAULT_CATEGORY

    def category_of(self, name: str) -> str:
        entry = self.individual_foods.get(name) or self.compound_foods.get(name)
        return entry["category"] if entry else DEFAULT_CATEGORY

    def individual(self, name: str) -> Optional[dict]:
        """Individual food entry by name, case-insensitively."""
        key = self._individual_by_key.get(normalize_food_text(name))
        return self.individual_foods.get(key) if key else None

    # ------------------------------------------------------------------
    # Nutrients
    # ------------------------------------------------------------------

    def individual_micronutrients(self, name: str) -> MicronutrientData:
        """Micronutrients of one reference serving of an individual food."""
        entry = self.individual(name)
        if entry is None:
            raise KeyError(f"Unknown food: {name}")

        values: Dict[str, float] = {}
        for key, amount in entry.get("vitamins", {}).items():
            values[VITAMIN_FIELDS[key]] = values.get(VITAMIN_FIELDS[key], 0.0) + float(amount)
        for key, amount in entry.get("minerals", {}).items():
            values[MINERAL_FIELDS[key]] = values.get(MINERAL_FIELDS[key], 0.0) + float(amount)
        for key, amount in entry.get("ibd", {}).items():
            values[IBD_NUTRIENT_FIELDS[key]] = values.get(IBD_NUTRIENT_FIELDS[key], 0.0) + float(amount)
        return MicronutrientData(**values)

    def compound_micronutrients(self, name: str) -> MicronutrientData:
        """
        Micronutrients of one serving of a compound dish: the sum of its
        ingredients, each scaled by its quantity.
        """
        dish = self.compound_foods[name]
        total = MicronutrientData()
        for ingredient, quantity, _unit in dish["ingredients"]:
            if self.individual(ingredient) is None:
                logger.warning(f"Ingredient '{ingredient}' of '{name}' not in food table, skipping")
                continue
            total = total.add(self.individual_micronutrients(ingredient).scale(quantity))
        return total

    def category_estimate(self, category: str) -> MicronutrientData:
        return MicronutrientData(**CATEGORY_ESTIMATES.get(category, {}))

    def individual_macros(self, name: str) -> Dict[str, float]:
        entry = self.individual(name)
        if entry is None:
            raise KeyError(f"Unknown food: {name}")
        return {field: float(entry.get(field, 0.0)) for field in MACRO_FIELDS}

    def compound_macros(self, name: str) -> Dict[str, float]:
        dish = self.compound_foods[name]
        totals = {field: 0.0 for field in MACRO_FIELDS}
        for ingredient, quantity, _unit in dish["ingredients"]:
            if self.individual(ingredient) is None:
                continue
            for field, amount in self.individual_macros(ingredient).items():
                totals[field] += amount * quantity
        return totals
