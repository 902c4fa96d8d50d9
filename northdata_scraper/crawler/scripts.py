"""
In-page JavaScript used by the scrape operations.

Every snippet is a function expression evaluated with a single argument.
Extraction snippets read from a cloned subtree and never mutate the live page.
"""

# Returns the outerHTML of a clone of the node at a structural path, or null
OUTER_HTML_AT_PATH_JS = """
(path) => {
    const node = document.evaluate(
        path, document, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null
    ).singleNodeValue;
    if (!node) return null;
    return node.cloneNode(true).outerHTML;
}
"""

# Returns the outerHTML of the first element matching a CSS selector, or null
OUTER_HTML_BY_SELECTOR_JS = """
(selector) => {
    const element = document.querySelector(selector);
    return element ? element.outerHTML : null;
}
"""

BODY_TEXT_JS = """
() => document.body ? document.body.innerText : ''
"""

# Truthy once the loading marker text is gone from the rendered body
LOADING_MARKER_GONE_JS = """
(marker) => !document.body || !document.body.innerText.includes(marker)
"""

# Truthy once the graphic holds nodes, edges and at least one sized rect
GRAPHIC_POPULATED_JS = """
(selector) => {
    const svg = document.querySelector(selector);
    if (!svg) return false;
    const hasNodes = svg.querySelectorAll('.node').length + svg.querySelectorAll('a.node').length > 0;
    const hasLinks = svg.querySelectorAll('.link').length > 0;
    const rectsSized = Array.from(svg.querySelectorAll('rect')).some((rect) => {
        const width = rect.getAttribute('width');
        if (width && parseFloat(width) > 0) return true;
        try {
            const box = rect.getBBox();
            return box && box.width > 0;
        } catch (e) {
            return false;
        }
    });
    return hasNodes && hasLinks && rectsSized;
}
"""

# Captures the graphic for export.
#
# Result shape:
#   markup:   serialized clone; every element carries data-style-index
#   styles:   per index, whitelisted computed properties (null inside <defs>)
#   images:   original image href -> data URI
#   fontCss:  @font-face rules with url() references inlined as data URIs
#   width/height: rendered size of the live element
CAPTURE_GRAPHIC_JS = """
async ({ selector, properties }) => {
    const svg = document.querySelector(selector);
    if (!svg) return null;

    const toDataUri = async (url) => {
        try {
            const response = await fetch(url);
            if (!response.ok) return null;
            const blob = await response.blob();
            return await new Promise((resolve) => {
                const reader = new FileReader();
                reader.onloadend = () => resolve(reader.result);
                reader.onerror = () => resolve(null);
                reader.readAsDataURL(blob);
            });
        } catch (e) {
            return null;
        }
    };

    const clone = svg.cloneNode(true);
    const liveNodes = [svg, ...svg.querySelectorAll('*')];
    const cloneNodes = [clone, ...clone.querySelectorAll('*')];
    const styles = [];

    liveNodes.forEach((node, index) => {
        const target = cloneNodes[index];
        target.setAttribute('data-style-index', String(index));
        if (node.closest('defs')) {
            styles.push(null);
            return;
        }
        const computed = window.getComputedStyle(node);
        const declarations = {};
        for (const property of properties) {
            const value = computed.getPropertyValue(property);
            if (value) declarations[property] = value;
        }
        styles.push(declarations);
    });

    const images = {};
    for (const image of svg.querySelectorAll('image')) {
        const href = image.getAttribute('href') || image.getAttribute('xlink:href');
        if (!href || href.startsWith('data:') || href in images) continue;
        const data = await toDataUri(new URL(href, document.baseURI).href);
        if (data) images[href] = data;
    }

    let fontCss = '';
    for (const sheet of Array.from(document.styleSheets)) {
        let rules;
        try {
            rules = sheet.cssRules;
        } catch (e) {
            continue;
        }
        if (!rules) continue;
        const base = sheet.href || document.baseURI;
        for (const rule of Array.from(rules)) {
            if (rule.type !== CSSRule.FONT_FACE_RULE) continue;
            let text = rule.cssText;
            for (const ref of [...text.matchAll(/url\\((['"]?)([^'")]+)\\1\\)/g)]) {
                if (ref[2].startsWith('data:')) continue;
                const data = await toDataUri(new URL(ref[2], base).href);
                if (data) text = text.split(ref[0]).join(`url("${data}")`);
            }
            fontCss += text + '\\n';
        }
    }

    const box = svg.getBoundingClientRect();
    return {
        markup: new XMLSerializer().serializeToString(clone),
        styles,
        images,
        fontCss,
        width: box.width,
        height: box.height,
    };
}
"""
