"""Fixed lookup tables for photo location estimation and street image search.

Everything here is ranking/extraction policy: changing a list changes which
candidates are produced and how they are scored.
"""

# 언어별 국가 우선순위 매핑 (일본어 제외)
LANGUAGE_COUNTRY_MAP = {
    "kor": {"countries": ["kr"], "priority": 1.0, "name": "한국어"},
    "cmn": {"countries": ["cn", "tw", "hk"], "priority": 0.9, "name": "중국어"},
    "fra": {"countries": ["fr", "be", "ch", "ca", "lu", "mc"], "priority": 0.9, "name": "프랑스어"},
    "deu": {"countries": ["de", "at", "ch", "li"], "priority": 0.9, "name": "독일어"},
    "spa": {"countries": ["es", "mx", "ar", "co", "cl", "pe"], "priority": 0.9, "name": "스페인어"},
    "ita": {"countries": ["it", "ch", "sm", "va"], "priority": 0.9, "name": "이탈리아어"},
    "eng": {"countries": ["us", "gb", "ca", "au", "nz", "ie"], "priority": 0.7, "name": "영어"},
    "por": {"countries": ["pt", "br", "ao", "mz"], "priority": 0.9, "name": "포르투갈어"},
    "rus": {"countries": ["ru", "by", "kz", "kg"], "priority": 0.9, "name": "러시아어"},
    "ara": {"countries": ["sa", "ae", "eg", "iq", "jo", "kw", "lb", "ma", "om", "qa", "sy", "tn", "ye"],
            "priority": 0.9, "name": "아랍어"},
    "tha": {"countries": ["th"], "priority": 1.0, "name": "태국어"},
    "vie": {"countries": ["vn"], "priority": 1.0, "name": "베트남어"},
    "ind": {"countries": ["id"], "priority": 1.0, "name": "인도네시아어"},
    "msa": {"countries": ["my", "sg", "bn"], "priority": 0.9, "name": "말레이어"},
}

DEFAULT_LANGUAGE = "eng"

# 광역 시/도 (한국어 감지 및 장소명 판단 공용)
KOREAN_PROVINCES = [
    "서울", "부산", "대구", "인천", "광주", "대전", "울산", "제주", "경기", "강원",
    "충북", "충남", "전북", "전남", "경북", "경남",
]

# 장소명 판단용 도시명 (수도권 위성도시 포함)
KOREAN_CITIES = KOREAN_PROVINCES + [
    "수원", "성남", "고양", "용인", "부천", "안산", "안양", "평택", "시흥", "김포",
    "의정부", "광명", "파주", "이천", "오산", "구리", "안성", "포천", "의왕", "하남",
    "양주", "남양주", "화성", "가평", "양평", "여주",
]

# 한국 주소 단위 (단독으로는 검색어로 부적합)
KOREAN_ADDRESS_SUFFIXES = ["시", "도", "군", "구", "동", "리", "로", "길", "가", "면", "읍"]

# 한국 랜드마크 접미사
KOREAN_LANDMARK_SUFFIXES = [
    "궁", "사", "원", "관", "타워", "빌딩", "센터", "공원", "광장", "다리", "역", "공항",
    "박물관", "미술관", "성", "문",
]

# 영문 장소 접미사
ENGLISH_PLACE_SUFFIXES = [
    "Street", "Avenue", "Road", "Park", "Tower", "Building", "Palace", "Temple", "Church",
    "Bridge", "Station", "Airport",
]

# 장소 이름에 자주 포함되는 키워드 (부분 문자열 매치)
LOCATION_KEYWORDS = [
    "타워", "빌딩", "센터", "공원", "광장", "다리", "역", "공항",
    "궁", "사", "원", "관", "성", "문", "박물관", "미술관",
    "Tower", "Building", "Center", "Park", "Square", "Bridge",
    "Station", "Airport", "Palace", "Temple", "Church", "Museum",
]

# 랜드마크 후처리 키워드 (텍스트 후보에서 부분 문자열로 재검색)
LANDMARK_KEYWORDS = [
    "타워", "Tower", "빌딩", "Building", "센터", "Center",
    "궁", "Palace", "사원", "Temple", "교회", "Church", "성당", "Cathedral",
    "공원", "Park", "광장", "Square", "다리", "Bridge", "역", "Station",
    "공항", "Airport", "호텔", "Hotel", "박물관", "Museum", "미술관", "Gallery",
    "서울", "Seoul", "부산", "Busan", "제주", "Jeju", "경복궁", "Gyeongbokgung",
    "남산", "Namsan", "한강", "Han River", "롯데타워", "Lotte Tower",
]

# 객체 인식 라벨 허용 목록 (정확히 일치)
PLACE_OBJECTS = [
    "building", "tower", "bridge", "church", "temple",
    "monument", "statue", "fountain", "clock", "sign",
]

# 이미지 분류 라벨 허용 목록 (부분 문자열)
PLACE_CATEGORIES = [
    "building", "tower", "palace", "temple", "church",
    "monument", "landmark", "bridge", "park", "plaza",
    "street", "road", "avenue", "station", "airport",
]

# Zero-shot 분류에 사용하는 장면 라벨
SCENE_LABELS = [
    "palace", "temple", "church", "mosque", "castle", "monument", "statue",
    "bell tower", "observation tower", "skyscraper", "office building", "apartment building",
    "suspension bridge", "stone bridge", "park", "plaza", "shopping street", "road",
    "avenue", "train station", "subway station", "airport", "harbor", "beach",
    "mountain", "forest", "river", "lake", "farmland", "desert",
]

# OCR 결과 중 검색에 부적합한 텍스트
OCR_EXCLUDE_PATTERNS = [
    r"^\d+$",                     # 숫자만
    r"^[A-Z]{1,2}$",              # 1-2자 영문 대문자만
    r"(?i)^(the|a|an|is|are|was|were|be|been|being|have|has|had|do|does|did|will|would|should|could|may|might|can|must)$",
    r"^(이|그|저|이것|그것|저것|여기|거기|저기)$",  # 한국어 지시어
    r"^(시|도|군|구|동|리|로|길|가)$",              # 주소 단위만
]

# 주소 마지막 구간 → 국가 코드
COUNTRY_NAME_MAP = {
    "south korea": "kr", "korea": "kr", "대한민국": "kr", "한국": "kr",
    "china": "cn", "중국": "cn",
    "france": "fr", "프랑스": "fr",
    "germany": "de", "독일": "de",
    "spain": "es", "스페인": "es",
    "italy": "it", "이탈리아": "it",
    "united states": "us", "usa": "us", "미국": "us",
    "united kingdom": "gb", "uk": "gb", "영국": "gb",
}

# 위치 키워드에서 제외할 국가 수준 일반 용어
GENERIC_COUNTRY_TERMS = ["south korea", "republic of korea", "대한민국", "korea"]

# Visual composition hints
VISUAL_URBAN_QUERY = "도시 건물"
VISUAL_NATURE_QUERY = "자연 풍경"
